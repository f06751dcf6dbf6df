from sqlalchemy import Column, String, Text

from trackage.database import Base


class AppMetadata(Base):
    """Key/value rows, e.g. the ingestion cursor `last_seen_uid`"""
    __tablename__ = "metadata"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
