from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import NotificationType, RecipientType


class NotificationCreate(BaseModel):
    # unified recipient model
    recipient_type: Optional[RecipientType] = None
    recipient_id: Optional[str] = None
    # legacy inputs, mapped onto recipient_type/recipient_id
    admin_id: Optional[str] = None
    teacher_id: Optional[str] = None

    title: str = Field(..., min_length=1)
    message: str
    type: NotificationType = NotificationType.INFO
    action_url: Optional[str] = None
    sender_type: Optional[RecipientType] = None
    sender_id: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    recipient_type: RecipientType
    recipient_id: str
    title: str
    message: str
    type: str
    read: bool = False
    created_at: str
    action_url: Optional[str] = None
    sender_type: Optional[str] = None
    sender_id: Optional[str] = None
    admin_id: Optional[str] = None
    teacher_id: Optional[str] = None
