"""In-app notifications (document store) and the dispatchers that pair them with an email."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from fastapi import status

from app.api.v1.email.service import send_email_type
from app.core.email_service import EmailService
from app.core.enums import EmailType, NotificationType, RecipientType
from app.core.exceptions import ServiceError
from app.remote.base import eq
from app.remote.documents import NOTIFICATIONS, DocumentStore

from .schemas import NotificationCreate, NotificationResponse

logger = logging.getLogger(__name__)


def _notification_id() -> str:
    return f"NOTIF_{uuid.uuid4().hex[:12]}"


def resolve_recipient(payload: NotificationCreate) -> Tuple[RecipientType, str]:
    if payload.recipient_type and payload.recipient_id:
        return payload.recipient_type, payload.recipient_id
    if payload.admin_id:
        return RecipientType.ADMIN, payload.admin_id
    if payload.teacher_id:
        return RecipientType.TEACHER, payload.teacher_id
    raise ServiceError(
        "recipient_type and recipient_id (or admin_id/teacher_id) are required",
        status.HTTP_400_BAD_REQUEST,
    )


async def create_notification(documents: DocumentStore, payload: NotificationCreate) -> NotificationResponse:
    recipient_type, recipient_id = resolve_recipient(payload)
    data: Dict[str, object] = {
        "recipient_type": recipient_type.value,
        "recipient_id": recipient_id,
        "title": payload.title,
        "message": payload.message,
        "type": payload.type.value,
        "read": False,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    if payload.action_url:
        data["action_url"] = payload.action_url
    if payload.sender_type:
        data["sender_type"] = payload.sender_type.value
    if payload.sender_id:
        data["sender_id"] = payload.sender_id
    # legacy fields so older inbox queries keep matching
    if recipient_type is RecipientType.ADMIN:
        data["admin_id"] = recipient_id
    if recipient_type is RecipientType.TEACHER:
        data["teacher_id"] = recipient_id

    notification_id = _notification_id()
    result = await documents.set(NOTIFICATIONS, notification_id, data)
    result.unwrap("Error creating notification")
    return NotificationResponse(id=notification_id, **data)


async def list_notifications(
    documents: DocumentStore,
    recipient_type: RecipientType,
    recipient_id: str,
    unread_only: bool = False,
) -> List[NotificationResponse]:
    result = await documents.query(
        NOTIFICATIONS,
        [eq("recipient_type", recipient_type.value), eq("recipient_id", recipient_id)],
    )
    rows = {row["id"]: row for row in result.unwrap("Failed to load notifications")}

    if recipient_type is RecipientType.ADMIN:
        legacy = await documents.query(NOTIFICATIONS, [eq("admin_id", recipient_id)])
        for row in legacy.unwrap("Failed to load notifications"):
            row.setdefault("recipient_type", RecipientType.ADMIN.value)
            row.setdefault("recipient_id", recipient_id)
            rows.setdefault(row["id"], row)

    items = [NotificationResponse.model_validate(r) for r in rows.values()]
    if unread_only:
        items = [n for n in items if not n.read]
    items.sort(key=lambda n: n.created_at, reverse=True)
    return items


async def mark_as_read(documents: DocumentStore, recipient_id: str, notification_id: str) -> Optional[NotificationResponse]:
    found = await documents.get(NOTIFICATIONS, notification_id)
    row = found.unwrap("Failed to load notification")
    if not row or recipient_id not in (row.get("recipient_id"), row.get("admin_id"), row.get("teacher_id")):
        return None
    updated = await documents.update(NOTIFICATIONS, notification_id, {"read": True})
    updated.unwrap("Failed to update notification")
    row["read"] = True
    if row.get("admin_id") and not row.get("recipient_id"):
        row["recipient_type"] = RecipientType.ADMIN.value
        row["recipient_id"] = row["admin_id"]
    return NotificationResponse.model_validate(row)


# ----- dispatchers: document first, then the email -----

async def send_welcome_notification(
    documents: DocumentStore, mailer: EmailService, admin_id: str, admin_name: str, admin_email: str
) -> str:
    notification = await create_notification(
        documents,
        NotificationCreate(
            recipient_type=RecipientType.ADMIN,
            recipient_id=admin_id,
            title="Welcome to Skultek!",
            message="Thank you for using Skultek School Management System. We're excited to have you on board!",
            type=NotificationType.WELCOME,
            action_url="/dashboard",
            sender_type=RecipientType.SYSTEM,
        ),
    )
    await send_email_type(mailer, EmailType.WELCOME, admin_email, name=admin_name, adminId=admin_id)
    return notification.id


async def send_password_change_notification(
    documents: DocumentStore, mailer: EmailService, admin_id: str, admin_name: str, admin_email: str
) -> str:
    notification = await create_notification(
        documents,
        NotificationCreate(
            recipient_type=RecipientType.ADMIN,
            recipient_id=admin_id,
            title="Password Changed",
            message="Your password was recently changed. If this wasn't you, please contact support immediately.",
            type=NotificationType.PASSWORD_CHANGE,
            action_url="/profile",
            sender_type=RecipientType.SYSTEM,
        ),
    )
    await send_email_type(mailer, EmailType.PASSWORD_CHANGE, admin_email, name=admin_name, adminId=admin_id)
    return notification.id


async def send_teacher_subject_assignment_notification(
    documents: DocumentStore,
    mailer: EmailService,
    teacher_id: str,
    teacher_name: str,
    teacher_email: Optional[str],
    subject_name: str,
    subject_code: str,
) -> str:
    notification = await create_notification(
        documents,
        NotificationCreate(
            recipient_type=RecipientType.TEACHER,
            recipient_id=teacher_id,
            title="Subject Assignment",
            message=(
                f"You have been assigned to teach {subject_name} ({subject_code}). "
                "Please review your teaching schedule and prepare accordingly."
            ),
            type=NotificationType.SYSTEM,
            action_url="/subjects",
            sender_type=RecipientType.ADMIN,
        ),
    )
    if teacher_email:
        await send_email_type(
            mailer,
            EmailType.TEACHER_ASSIGNMENT,
            teacher_email,
            name=teacher_name,
            teacherId=teacher_id,
            subjectName=subject_name,
            subjectCode=subject_code,
        )
    return notification.id


async def send_teacher_class_assignment_notification(
    documents: DocumentStore,
    mailer: EmailService,
    teacher_id: str,
    teacher_name: str,
    teacher_email: Optional[str],
    class_name: str,
    class_level: str,
) -> str:
    notification = await create_notification(
        documents,
        NotificationCreate(
            recipient_type=RecipientType.TEACHER,
            recipient_id=teacher_id,
            title="Class Assignment",
            message=(
                f"You have been assigned as the class teacher for {class_name} ({class_level}). "
                "Please review your class details and prepare for the academic year."
            ),
            type=NotificationType.SYSTEM,
            action_url="/classes",
            sender_type=RecipientType.ADMIN,
        ),
    )
    if teacher_email:
        await send_email_type(
            mailer,
            EmailType.TEACHER_CLASS_ASSIGNMENT,
            teacher_email,
            name=teacher_name,
            teacherId=teacher_id,
            className=class_name,
            classLevel=class_level,
        )
    else:
        logger.info("Teacher %s has no email; class assignment email skipped", teacher_id)
    return notification.id
