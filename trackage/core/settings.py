"""
Configuration settings for trackage

Values come from the environment (prefix TRACKAGE_) or a .env file.
"""

from typing import Optional, Dict, Any
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache

from trackage.core.exceptions import ConfigurationException

MASKED = "******"
NOT_SET = "<not set>"


def _mask(value: Optional[str]) -> str:
    return MASKED if value else NOT_SET


class AppSettings(BaseSettings):
    """Process-wide settings"""

    database_path: str = Field(default="trackage.db")
    status_check_interval_seconds: int = Field(default=3600, gt=0)
    log_level: str = Field(default="INFO")

    model_config = {
        "env_prefix": "TRACKAGE_",
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"


@lru_cache()
def get_app_settings() -> AppSettings:
    """Get cached app settings instance"""
    return AppSettings()


class EmailSettings(BaseSettings):
    """IMAP mailbox the ingestion worker reads"""

    server: Optional[str] = Field(default=None)
    port: int = Field(default=993)
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    folder: str = Field(default="INBOX")
    check_interval_seconds: int = Field(default=300)

    model_config = {
        "env_prefix": "TRACKAGE_EMAIL_",
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required(self) -> None:
        """
        Raise ConfigurationException if the mailbox cannot be used.

        Raises:
            ConfigurationException: On the first missing or invalid field
        """
        for field_name in ("server", "username", "password"):
            if not getattr(self, field_name):
                raise ConfigurationException(
                    f"email.{field_name} is required",
                    details={"field": field_name}
                )
        if self.check_interval_seconds <= 0:
            raise ConfigurationException(
                "email.check_interval_seconds must be greater than 0",
                details={"field": "check_interval_seconds"}
            )

    def sanitized(self) -> Dict[str, Any]:
        return {
            "server": self.server or NOT_SET,
            "port": self.port,
            "username": self.username or NOT_SET,
            "password": _mask(self.password),
            "folder": self.folder,
            "check_interval_seconds": self.check_interval_seconds,
        }


@lru_cache()
def get_email_settings() -> EmailSettings:
    """Get cached email settings instance"""
    return EmailSettings()


class CarrierIntegrationSettings(BaseSettings):
    """Carrier integration configuration settings"""

    # FedEx Integration settings
    fedex_client_id: Optional[str] = Field(default=None)
    fedex_client_secret: Optional[str] = Field(default=None)
    fedex_use_sandbox: bool = Field(default=True)
    fedex_base_url_prod: str = Field(default="https://apis.fedex.com")
    fedex_base_url_sandbox: str = Field(default="https://apis-sandbox.fedex.com")

    # UPS Integration settings
    ups_client_id: Optional[str] = Field(default=None)
    ups_client_secret: Optional[str] = Field(default=None)
    ups_base_url: str = Field(default="https://onlinetools.ups.com")

    # UPS web (session scraping) settings
    ups_web_enabled: bool = Field(default=False)
    ups_web_base_url: str = Field(default="https://www.ups.com")
    ups_web_timeout_seconds: float = Field(default=60.0)

    # USPS Integration settings
    usps_client_id: Optional[str] = Field(default=None)
    usps_client_secret: Optional[str] = Field(default=None)
    usps_base_url: str = Field(default="https://apis.usps.com")

    # HTTP behaviour shared by every client
    http_timeout_seconds: float = Field(default=30.0)
    http_max_retries: int = Field(default=3, ge=0)
    http_retry_base_delay: float = Field(default=1.0)

    model_config = {
        "env_prefix": "TRACKAGE_COURIER_",
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def fedex_enabled(self) -> bool:
        return bool(self.fedex_client_id and self.fedex_client_secret)

    @property
    def ups_enabled(self) -> bool:
        return bool(self.ups_client_id and self.ups_client_secret)

    @property
    def usps_enabled(self) -> bool:
        return bool(self.usps_client_id and self.usps_client_secret)

    def sanitized(self) -> Dict[str, Any]:
        """Settings view safe for logging: client ids shown, secrets masked"""
        def credentials(client_id: Optional[str], client_secret: Optional[str]) -> Optional[Dict[str, str]]:
            if not client_id:
                return None
            return {"client_id": client_id, "client_secret": _mask(client_secret)}

        return {
            "fedex": credentials(self.fedex_client_id, self.fedex_client_secret),
            "fedex_use_sandbox": self.fedex_use_sandbox,
            "ups": credentials(self.ups_client_id, self.ups_client_secret),
            "ups_web_enabled": self.ups_web_enabled,
            "usps": credentials(self.usps_client_id, self.usps_client_secret),
            "http_timeout_seconds": self.http_timeout_seconds,
            "http_max_retries": self.http_max_retries,
        }


@lru_cache()
def get_carrier_integration_settings() -> CarrierIntegrationSettings:
    """Get cached carrier integration settings instance"""
    return CarrierIntegrationSettings()
