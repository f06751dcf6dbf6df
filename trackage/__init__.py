"""trackage: follow parcels from shipping notification emails to delivery."""

__version__ = "0.4.0"
