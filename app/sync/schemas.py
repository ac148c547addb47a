from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.enums import EntityType, OperationKind, SchedulerState

SYNC_INTERVAL_CHOICES = (1, 5, 15, 30, 60)


class PendingOperationRecord(BaseModel):
    id: str
    entity_type: EntityType
    operation_kind: OperationKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    target_id: Optional[str] = None
    enqueued_at: datetime

    class Config:
        from_attributes = True


class SyncSettings(BaseModel):
    auto_sync_enabled: bool = True
    sync_interval_minutes: int = 5
    last_sync_time: Optional[datetime] = None

    @field_validator("sync_interval_minutes")
    @classmethod
    def _interval_is_a_choice(cls, value: int) -> int:
        if value not in SYNC_INTERVAL_CHOICES:
            raise ValueError(f"sync_interval_minutes must be one of {SYNC_INTERVAL_CHOICES}")
        return value


class SyncSettingsUpdate(BaseModel):
    auto_sync_enabled: Optional[bool] = None
    sync_interval_minutes: Optional[int] = None


class OperationFailure(BaseModel):
    operation_id: str
    entity_type: EntityType
    operation_kind: OperationKind
    error: str


class SyncReport(BaseModel):
    skipped: bool = False
    reason: Optional[str] = None
    attempted: int = 0
    applied: int = 0
    failed: List[OperationFailure] = Field(default_factory=list)
    completed_at: Optional[datetime] = None


class DownloadReport(BaseModel):
    skipped: bool = False
    reason: Optional[str] = None
    school_id: Optional[str] = None
    collections: Dict[str, int] = Field(default_factory=dict)
    completed_at: Optional[datetime] = None


class SyncStatusResponse(BaseModel):
    is_connected: bool
    is_syncing: bool
    scheduler_state: SchedulerState
    next_sync_at: Optional[datetime] = None
    pending_count: int
    background_queue_size: int = 0
    settings: SyncSettings
    settings_loaded: bool


class ConnectionEvent(BaseModel):
    online: bool


class NoticeResponse(BaseModel):
    title: str
    description: str
    variant: str
    created_at: datetime
