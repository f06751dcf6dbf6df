from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional

from trackage.models.status import PackageStatusEnum


class ActivePackage(BaseModel):
    """A package the status poller still has to check"""
    id: int
    tracking_number: str
    courier: str
    service: str
    status: PackageStatusEnum = Field(PackageStatusEnum.WAITING, description="Latest history status")


class NewPackage(BaseModel):
    """Confirmed tracking number plus the email it came from"""
    tracking_number: str
    courier: str
    service: str
    tracking_url: Optional[str] = None
    source_email_uid: int
    source_email_subject: Optional[str] = None
    source_email_from: Optional[str] = None
    source_email_date: datetime


class PackageWithStatus(BaseModel):
    id: int
    tracking_number: str
    courier: str
    service: str
    status: PackageStatusEnum
    estimated_arrival_date: Optional[str] = None
    last_known_location: Optional[str] = None
    tracking_url: Optional[str] = None
    source_email_from: Optional[str] = None
    created_at: datetime


class StatusHistoryEntry(BaseModel):
    id: int
    status: PackageStatusEnum
    estimated_arrival_date: Optional[str] = None
    last_known_location: Optional[str] = None
    description: Optional[str] = None
    checked_at: str

    model_config = {"from_attributes": True}
