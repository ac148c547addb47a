"""School admin provisioning: auth account, school row, admin row, as one saga.

The saga runs against the un-queued remote store. A captured-for-replay insert
would come back after its compensation had already run.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import status

from app.api.v1.notifications.service import send_welcome_notification
from app.auth.services import ADMIN_TABLE, SCHOOLS_TABLE
from app.core.email_service import EmailService
from app.core.exceptions import RemoteCallError, ServiceError
from app.core.saga import Saga
from app.remote.base import AuthClient, RemoteStore, eq
from app.remote.documents import SCHOOL_ADMINS, DocumentStore

from .schemas import AdminProvisionRequest, AdminProvisionResponse

logger = logging.getLogger(__name__)


async def provision_admin(
    remote: RemoteStore,
    auth: AuthClient,
    documents: DocumentStore,
    mailer: EmailService,
    payload: AdminProvisionRequest,
) -> AdminProvisionResponse:
    """Raises SagaFailedError (carrying the step and compensation outcomes) when a step fails."""
    saga = Saga("provision_admin")
    now = datetime.now(timezone.utc).isoformat()
    school_id = str(uuid.uuid4())

    async def create_auth_user() -> Dict[str, Any]:
        signed_up = await auth.sign_up(
            payload.emailaddress,
            payload.password,
            metadata={"name": payload.adminname, "role": payload.role},
        )
        if signed_up.error:
            if "already registered" in signed_up.error.message:
                raise ServiceError("Email already registered. Use a different email.", status.HTTP_409_CONFLICT)
            raise RemoteCallError(signed_up.error, "Auth Error")
        if not signed_up.data or not signed_up.data.get("id"):
            raise ServiceError("Failed to create user account", status.HTTP_502_BAD_GATEWAY)
        return signed_up.data

    async def delete_auth_user(user: Dict[str, Any]) -> None:
        deleted = await auth.delete_user(user["id"])
        deleted.unwrap("Failed to delete auth user")

    async def create_school() -> str:
        created = await remote.insert(
            SCHOOLS_TABLE,
            {"id": school_id, "name": payload.schoolName, "stage": payload.schoolStage.value, "created_at": now},
        )
        created.unwrap("Failed to create school")
        return school_id

    async def delete_school(created_school_id: str) -> None:
        deleted = await remote.delete(SCHOOLS_TABLE, [eq("id", created_school_id)])
        deleted.unwrap("Failed to clean up school")

    user = await saga.step("create_auth_user", create_auth_user, delete_auth_user)
    await saga.step("create_school", create_school, delete_school)

    admin_row = {
        "id": user["id"],
        "email": payload.emailaddress,
        "name": payload.adminname,
        "adminname": payload.adminname,
        "role": payload.role,
        "gender": payload.gender,
        "school_id": school_id,
        "created_at": now,
        "updated_at": now,
        "hasloggedinbefore": False,
    }

    async def create_admin_profile() -> None:
        created = await remote.insert(ADMIN_TABLE, admin_row)
        created.unwrap("Failed to create admin profile")

    await saga.step("create_admin_profile", create_admin_profile)
    logger.info("Provisioned admin %s for school %s (%s)", user["id"], school_id, payload.schoolName)

    mirrored = await documents.set(SCHOOL_ADMINS, user["id"], {**admin_row, "schoolName": payload.schoolName})
    if mirrored.error:
        logger.warning("Could not mirror admin %s to the document store: %s", user["id"], mirrored.error.message)

    notification_id: Optional[str] = None
    try:
        notification_id = await send_welcome_notification(
            documents, mailer, user["id"], payload.adminname, payload.emailaddress
        )
    except ServiceError as exc:
        logger.warning("Welcome notification for %s failed: %s", user["id"], exc.message)

    return AdminProvisionResponse(
        admin_id=user["id"],
        school_id=school_id,
        email=payload.emailaddress,
        name=payload.adminname,
        role=payload.role,
        school_name=payload.schoolName,
        stage=payload.schoolStage.value,
        welcome_notification_id=notification_id,
    )
