from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.core.services import AppServices, get_services

from .schemas import (
    BulkAssignmentResult,
    BulkSubjectAssignmentCreate,
    SubjectAssignmentCreate,
    SubjectAssignmentResponse,
    TeacherSubjectAssignmentCreate,
    TeacherSubjectAssignmentResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/subject-assignments", tags=["subject-assignments"])


@router.post("", response_model=SubjectAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_student(
    payload: SubjectAssignmentCreate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SubjectAssignmentResponse:
    try:
        return await service.assign_student_to_subject(
            services.documents, current_user.school_id, current_user.admin_id, payload
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/bulk", response_model=BulkAssignmentResult, status_code=status.HTTP_201_CREATED)
async def bulk_assign_students(
    payload: BulkSubjectAssignmentCreate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkAssignmentResult:
    return await service.bulk_assign_students_to_subject(
        services.documents,
        current_user.school_id,
        current_user.admin_id,
        payload.student_ids,
        payload.subject_id,
        academic_year=payload.academic_year,
        term=payload.term,
    )


@router.post("/teacher", response_model=TeacherSubjectAssignmentResponse)
async def assign_teacher(
    payload: TeacherSubjectAssignmentCreate,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> TeacherSubjectAssignmentResponse:
    try:
        return await service.assign_teacher_to_subject(
            services.writer, services.documents, services.email, current_user.school_id, payload
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[SubjectAssignmentResponse])
async def list_assignments(
    active_only: bool = Query(False),
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[SubjectAssignmentResponse]:
    try:
        return await service.get_subject_assignments(services.documents, current_user.school_id, active_only)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/subjects/{subject_id}/students", response_model=List[Dict[str, Any]])
async def students_for_subject(
    subject_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    try:
        return await service.get_students_for_subject(
            services.documents, services.remote, current_user.school_id, subject_id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/subjects", response_model=List[Dict[str, Any]])
async def subjects_for_student(
    student_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    try:
        return await service.get_subjects_for_student(
            services.documents, services.remote, current_user.school_id, student_id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{assignment_id}/deactivate", response_model=SubjectAssignmentResponse)
async def deactivate_assignment(
    assignment_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> SubjectAssignmentResponse:
    try:
        obj = await service.deactivate_assignment(services.documents, current_user.school_id, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return obj


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment(
    assignment_id: str,
    services: AppServices = Depends(get_services),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    try:
        removed = await service.remove_student_from_subject(services.documents, current_user.school_id, assignment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
