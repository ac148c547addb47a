from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import RecipientType
from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services

from .schemas import NotificationCreate, NotificationResponse
from . import service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[NotificationResponse]:
    try:
        return await service.list_notifications(
            services.documents, RecipientType.ADMIN, current_user.admin_id, unread_only=unread_only
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> NotificationResponse:
    if payload.sender_type is None:
        payload.sender_type = RecipientType.ADMIN
        payload.sender_id = current_user.admin_id
    try:
        return await service.create_notification(services.documents, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> NotificationResponse:
    try:
        obj = await service.mark_as_read(services.documents, current_user.admin_id, notification_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return obj
