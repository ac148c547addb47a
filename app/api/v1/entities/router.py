"""Generic offline-aware writes for the synced entity collections."""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.enums import EntityType
from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services
from app.sync.writer import WriteOutcome

router = APIRouter(prefix="/api/v1/entities", tags=["entities"])

CLASS_WRITES_MESSAGE = "Classes are created, updated and deleted through /api/v1/classes"


def _reject_class_writes(entity_type: EntityType) -> None:
    # class writes must pass the duplicate and enrolled-student checks
    if entity_type is EntityType.CLASS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=CLASS_WRITES_MESSAGE)


async def _owned_or_404(
    services: AppServices, entity_type: EntityType, record_id: str, current_user: CurrentUser
) -> WriteOutcome:
    found = await services.writer.get(entity_type, record_id, school_id=current_user.school_id)
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
    return found


@router.get("/{entity_type}", response_model=List[Dict[str, Any]])
async def list_entities(
    entity_type: EntityType,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    try:
        return await services.writer.list(entity_type, current_user.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{entity_type}", response_model=WriteOutcome)
async def save_entity(
    entity_type: EntityType,
    data: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> WriteOutcome:
    """Create when the body has no ``id``, update the caller's record with that id otherwise."""
    _reject_class_writes(entity_type)
    record_id = data.pop("id", None)
    data["school_id"] = current_user.school_id
    try:
        if record_id:
            await _owned_or_404(services, entity_type, record_id, current_user)
        return await services.writer.save(entity_type, data, record_id=record_id, school_id=current_user.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{entity_type}/{record_id}", response_model=WriteOutcome)
async def get_entity(
    entity_type: EntityType,
    record_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> WriteOutcome:
    try:
        return await _owned_or_404(services, entity_type, record_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{entity_type}/{record_id}", response_model=WriteOutcome)
async def delete_entity(
    entity_type: EntityType,
    record_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> WriteOutcome:
    _reject_class_writes(entity_type)
    try:
        await _owned_or_404(services, entity_type, record_id, current_user)
        return await services.writer.delete(entity_type, record_id, school_id=current_user.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
