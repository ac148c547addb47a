"""Locally queued write that has not been confirmed by the remote store yet.
Rows are append-only: a failed operation is retried as-is, never rewritten."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingOperation(Base):
    __tablename__ = "pending_operations"

    # seq gives the strict enqueue order used when draining the queue
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    entity_type = Column(String(20), nullable=False)
    operation_kind = Column(String(10), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    target_id = Column(String(64), nullable=True)
    enqueued_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
