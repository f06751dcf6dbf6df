from sqlalchemy import Integer, Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from trackage.database import Base


class PackageStatusHistory(Base):
    """
    Append-only status ledger. `id` is the only total ordering: the row with
    the highest id is a package's current status, whatever `checked_at` says.
    """
    __tablename__ = "package_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    package_id = Column(Integer, ForeignKey('packages.id'), nullable=False, index=True)
    # PackageStatusEnum value, parsed on every read
    status = Column(String(16), nullable=False)
    estimated_arrival_date = Column(String(32), nullable=True)
    last_known_location = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    # RFC 3339 UTC or ISO date
    checked_at = Column(String(32), nullable=False)

    package = relationship("Package", back_populates="statuses")
