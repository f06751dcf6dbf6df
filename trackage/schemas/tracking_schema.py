from pydantic import BaseModel, Field
from typing import Optional

from trackage.models.status import PackageStatusEnum


class StatusObservation(BaseModel):
    """One courier-reported status event, destined for one history append"""
    status: PackageStatusEnum = Field(..., description="Canonical status")
    estimated_arrival_date: Optional[str] = Field(None, description="ISO date or RFC 3339 timestamp")
    last_known_location: Optional[str] = Field(None, description="Free text, usually 'City, ST'")
    description: Optional[str] = Field(None, description="Courier wording of the event")
    checked_at: Optional[str] = Field(None, description="Observation time if the courier reports one")

    model_config = {"frozen": True}


class ConfirmedTrackingNumber(BaseModel):
    """A candidate the courier-format rules accepted"""
    tracking_number: str = Field(..., description="Cleaned tracking number")
    courier: str = Field(..., description="Courier code, e.g. 'ups'")
    service: str = Field(..., description="Courier product / service name")
    tracking_url: Optional[str] = Field(None, description="Public tracking page")

    model_config = {"frozen": True}
