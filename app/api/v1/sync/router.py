from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services
from app.sync.schemas import (
    ConnectionEvent,
    DownloadReport,
    NoticeResponse,
    PendingOperationRecord,
    SyncReport,
    SyncSettings,
    SyncSettingsUpdate,
    SyncStatusResponse,
)

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


async def _status(services: AppServices) -> SyncStatusResponse:
    return SyncStatusResponse(
        is_connected=services.monitor.is_connected,
        is_syncing=services.executor.is_syncing,
        scheduler_state=services.scheduler.state,
        next_sync_at=services.scheduler.next_deadline,
        pending_count=await services.pending.count(),
        background_queue_size=len(services.background_queue) if services.background_queue is not None else 0,
        settings=services.sync_settings.settings,
        settings_loaded=services.sync_settings.is_loaded,
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SyncStatusResponse:
    return await _status(services)


@router.get("/pending", response_model=List[PendingOperationRecord])
async def pending_operations(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[PendingOperationRecord]:
    return await services.pending.get_all()


@router.put("/settings", response_model=SyncSettings)
async def update_sync_settings(
    payload: SyncSettingsUpdate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SyncSettings:
    try:
        await services.sync_settings.update_settings(**payload.model_dump(exclude_none=True))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return services.sync_settings.settings


@router.post("/run", response_model=SyncReport)
async def run_sync(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SyncReport:
    """Manual "Sync now". Counts as an attempt for the reconnect cooldown."""
    if not services.monitor.is_connected:
        services.notices.push("Offline", "Cannot sync while offline. Please check your connection.", "destructive")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Cannot sync while offline")
    services.scheduler.record_manual_attempt()
    try:
        return await services.executor.sync_pending_operations()
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/download", response_model=DownloadReport)
async def download_all_data(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> DownloadReport:
    try:
        return await services.executor.download_all_data(current_user.school_id)
    except ServiceError as e:
        services.notices.push("Download failed", e.message, "destructive")
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/connection", response_model=SyncStatusResponse)
async def report_connection(
    payload: ConnectionEvent,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SyncStatusResponse:
    """The client saw the browser go online/offline."""
    if payload.online:
        await services.monitor.handle_online()
    else:
        await services.monitor.handle_offline()
    return await _status(services)


@router.post("/probe", response_model=SyncStatusResponse)
async def probe_connection(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SyncStatusResponse:
    await services.monitor.check()
    return await _status(services)


@router.get("/notices", response_model=List[NoticeResponse])
async def drain_notices(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[NoticeResponse]:
    return [NoticeResponse(**n.to_dict()) for n in services.notices.drain()]
