"""Local mirror of remote entity collections (students, classes, ...)."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String

from app.db.session import Base


class LocalRecord(Base):
    __tablename__ = "local_records"

    collection = Column(String(40), primary_key=True)
    record_id = Column(String(64), primary_key=True)
    school_id = Column(String(64), nullable=True, index=True)
    data = Column(JSON, nullable=False, default=dict)
    stored_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
