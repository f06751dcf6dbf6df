from datetime import datetime, timezone

from sqlalchemy.orm import relationship
from sqlalchemy import Column, Integer, String, DateTime, Text

from ..database import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Package(Base):
    __tablename__ = "packages"

    id = Column(Integer, primary_key=True, index=True)
    tracking_number = Column(String(64), nullable=False, unique=True, index=True)
    courier = Column(String(32), nullable=False)
    service = Column(String(128), nullable=False)
    tracking_url = Column(Text, default=None)
    source_email_uid = Column(Integer, nullable=False)
    source_email_subject = Column(Text, default=None)
    source_email_from = Column(Text, default=None)
    source_email_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utc_now)
    deleted_at = Column(DateTime, default=None)

    statuses = relationship(
        "PackageStatusHistory",
        back_populates="package",
        order_by="PackageStatusHistory.id",
    )
