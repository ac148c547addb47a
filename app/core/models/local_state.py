"""Process-wide key/value flags (session flags, sync settings). No expiry."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String

from app.db.session import Base


class LocalStateEntry(Base):
    __tablename__ = "local_state"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
