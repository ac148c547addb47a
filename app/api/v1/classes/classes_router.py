from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services

from .schemas import (
    ClassCapacity,
    ClassCreate,
    ClassMetrics,
    ClassMutationResponse,
    ClassResponse,
    ClassUpdate,
    ClassUpdateResult,
    ClassValidationResult,
    ClassWithDetails,
    LevelOptions,
)
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.get("", response_model=List[ClassWithDetails])
async def list_classes(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ClassWithDetails]:
    """Classes with form teacher, student counts and occupancy, ordered by level."""
    try:
        return await service.list_classes_with_details(services.writer, current_user.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/metrics", response_model=ClassMetrics)
async def class_metrics(
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassMetrics:
    try:
        classes = await service.list_classes_with_details(services.writer, current_user.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return service.get_class_metrics(classes)


@router.get("/levels", response_model=LevelOptions)
async def level_options(
    stage: Optional[str] = Query(None, description="School stage, e.g. Primary or Senior Secondary"),
    current_user: CurrentUser = Depends(get_current_user),
) -> LevelOptions:
    return LevelOptions(stage=stage, levels=service.get_level_options(stage))


@router.post("/validate", response_model=ClassValidationResult)
async def validate_class(
    payload: Dict[str, Any],
    class_id: Optional[str] = Query(None, description="Class being edited, excluded from the duplicate check"),
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassValidationResult:
    return await service.validate_class_data(services.remote, payload, current_user.school_id, class_id)


@router.post("", response_model=ClassMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassMutationResponse:
    try:
        return await service.create_class(
            services.remote,
            services.writer,
            current_user.school_id,
            current_user.school_name,
            payload,
            actor=current_user,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassResponse:
    try:
        obj = await service.get_class_by_id(services.remote, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not obj or obj.get("school_id") != current_user.school_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return ClassResponse(**obj)


@router.get("/{class_id}/capacity", response_model=ClassCapacity)
async def class_capacity(
    class_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassCapacity:
    try:
        return await service.check_class_capacity(services.remote, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{class_id}", response_model=ClassUpdateResult)
async def update_class(
    class_id: str,
    payload: ClassUpdate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassUpdateResult:
    try:
        result = await service.update_class(
            services.remote,
            services.writer,
            current_user.school_id,
            current_user.school_name,
            class_id,
            payload,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    if result.has_teacher_changed and result.new_teacher_id and not result.offline:
        result.teacher_notified = await service.notify_form_teacher(
            services.remote, services.documents, services.email, result
        )
    return result


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    try:
        deleted = await service.delete_class(services.remote, services.writer, current_user.school_id, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
