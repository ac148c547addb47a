"""
Class workflow: validation, persistence and the side effects of class changes.

Uniqueness of (name, level) and the form-teacher check are read-then-write
against the remote store. Two admins saving at the same moment can race.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import status
from pydantic import ValidationError

from app.api.v1.notifications.service import send_teacher_class_assignment_notification
from app.auth.schemas import CurrentUser
from app.core.audit import log_audit
from app.core.email_service import EmailService
from app.core.enums import EntityType, SchoolStage
from app.core.exceptions import ServiceError
from app.core.normalize import normalize_teacher
from app.remote.base import RemoteStore, eq
from app.remote.documents import DocumentStore
from app.sync.writer import OfflineAwareWriter

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
)

logger = logging.getLogger(__name__)

CLASSES_TABLE = "classes"
TEACHERS_TABLE = "teachers"
STUDENTS_TABLE = "students"

DUPLICATE_CLASS_MESSAGE = "A class with this name and level already exists"
TEACHER_BUSY_WARNING = "This teacher is already assigned to another class"
STUDENTS_ENROLLED_MESSAGE = "Cannot delete class: students enrolled. Please reassign students first."
OFFLINE_CHECKS_WARNING = "Saved offline: duplicate and teacher checks will not run until you are back online"

LEVEL_OPTIONS = {
    SchoolStage.PRIMARY: [f"Prep {n}" for n in range(1, 7)],
    SchoolStage.JUNIOR_SECONDARY: [f"JSS {n}" for n in range(1, 4)],
    SchoolStage.SENIOR_SECONDARY: [f"SSS {n}" for n in range(1, 4)],
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_active(row: Dict[str, Any]) -> bool:
    return row.get("is_active", True) is not False


def get_level_options(stage: Optional[str]) -> List[str]:
    for known, levels in LEVEL_OPTIONS.items():
        if stage and stage.strip().lower() == known.value.lower():
            return list(levels)
    return ["Not Specified"]


def _field_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"])
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return messages


async def validate_class_data(
    remote: RemoteStore,
    data: Dict[str, Any],
    school_id: str,
    existing_class_id: Optional[str] = None,
) -> ClassValidationResult:
    """Check a class payload. Never raises: problems come back in ``errors``/``warnings``."""
    errors: List[str] = []
    warnings: List[str] = []

    try:
        validated = ClassCreate.model_validate(data)
    except ValidationError as exc:
        return ClassValidationResult(is_valid=False, errors=_field_errors(exc))
    if not school_id:
        return ClassValidationResult(is_valid=False, errors=["School ID is required"])

    duplicates = await remote.select(
        CLASSES_TABLE,
        [eq("school_id", school_id), eq("name", validated.name), eq("level", validated.level)],
    )
    if duplicates.error:
        logger.warning("Duplicate check for class %s failed: %s", validated.name, duplicates.error.message)
        errors.append("Could not check for duplicate classes")
    elif any(r.get("id") != existing_class_id and _is_active(r) for r in duplicates.data):
        errors.append(DUPLICATE_CLASS_MESSAGE)

    if validated.teacher_id:
        found = await remote.select(TEACHERS_TABLE, [eq("id", validated.teacher_id)], limit=1)
        if found.error:
            logger.warning("Teacher lookup %s failed: %s", validated.teacher_id, found.error.message)
            errors.append("Could not verify the selected teacher")
        elif not found.first():
            errors.append("Selected teacher does not exist")
        else:
            teacher = normalize_teacher(found.first())
            if teacher.school_id != school_id:
                errors.append("Selected teacher does not belong to this school")
            taught = await remote.select(
                CLASSES_TABLE,
                [eq("school_id", school_id), eq("teacher_id", validated.teacher_id)],
            )
            if taught.error:
                logger.warning("Form-teacher check for %s failed: %s", validated.teacher_id, taught.error.message)
            elif any(r.get("id") != existing_class_id and _is_active(r) for r in taught.data):
                warnings.append(TEACHER_BUSY_WARNING)

    return ClassValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _raise_invalid(validation: ClassValidationResult) -> None:
    code = status.HTTP_409_CONFLICT if DUPLICATE_CLASS_MESSAGE in validation.errors else status.HTTP_400_BAD_REQUEST
    raise ServiceError(", ".join(validation.errors), code)


async def get_class_by_id(remote: RemoteStore, class_id: str) -> Optional[Dict[str, Any]]:
    result = await remote.select(CLASSES_TABLE, [eq("id", class_id)], limit=1)
    result.unwrap("Failed to load class")
    return result.first()


async def create_class(
    remote: RemoteStore,
    writer: OfflineAwareWriter,
    school_id: str,
    school_name: Optional[str],
    payload: ClassCreate,
    actor: Optional[CurrentUser] = None,
) -> ClassMutationResponse:
    data = payload.model_dump()
    if writer.is_connected:
        validation = await validate_class_data(remote, data, school_id)
        if not validation.is_valid:
            _raise_invalid(validation)
        warnings = validation.warnings
    else:
        warnings = [OFFLINE_CHECKS_WARNING]

    now = _now()
    row = {
        **data,
        "id": f"CL{uuid.uuid4().hex[:8].upper()}",
        "school_id": school_id,
        "school_name": school_name,
        "is_active": True,
        "students_count": 0,
        "created_at": now,
        "updated_at": now,
    }
    outcome = await writer.create(EntityType.CLASS, row)

    if actor is not None and not outcome.offline:
        await log_audit(
            remote,
            school_id,
            "class",
            row["id"],
            "create",
            user_id=actor.admin_id,
            user_name=actor.name or "Admin",
            after=row,
        )
    logger.info("Class %s (%s %s) created for school %s", row["id"], row["name"], row["level"], school_id)
    return ClassMutationResponse(data=ClassResponse(**row), warnings=warnings, offline=outcome.offline)


async def update_class(
    remote: RemoteStore,
    writer: OfflineAwareWriter,
    school_id: str,
    school_name: Optional[str],
    class_id: str,
    payload: ClassUpdate,
) -> Optional[ClassUpdateResult]:
    """Re-validate the merged record, then write it. Returns teacher-change metadata for the caller."""
    changes = payload.model_dump(exclude_unset=True, exclude={"previous_teacher_id"})

    if writer.is_connected:
        existing = await get_class_by_id(remote, class_id)
    else:
        cached = await writer.get(EntityType.CLASS, class_id)
        existing = cached.data if cached else None
    if not existing or existing.get("school_id") != school_id:
        return None

    merged = {**existing, **changes}
    warnings: List[str] = []
    if writer.is_connected:
        validation = await validate_class_data(remote, merged, school_id, existing_class_id=class_id)
        if not validation.is_valid:
            _raise_invalid(validation)
        warnings = validation.warnings
    else:
        warnings = [OFFLINE_CHECKS_WARNING]

    values = {**changes, "school_id": school_id, "updated_at": _now()}
    if school_name:
        values["school_name"] = school_name
    outcome = await writer.update(EntityType.CLASS, class_id, values, school_id=school_id)

    if "previous_teacher_id" in payload.model_fields_set:
        previous = payload.previous_teacher_id
    else:
        previous = existing.get("teacher_id")
    new_teacher = merged.get("teacher_id")
    return ClassUpdateResult(
        data=ClassResponse(**{**merged, **values}),
        warnings=warnings,
        offline=outcome.offline,
        previous_teacher_id=previous,
        new_teacher_id=new_teacher,
        has_teacher_changed=previous != new_teacher,
    )


async def notify_form_teacher(
    remote: RemoteStore,
    documents: DocumentStore,
    mailer: EmailService,
    updated: ClassUpdateResult,
) -> bool:
    """Tell a newly assigned form teacher. Best-effort: failures are logged, never raised."""
    if not updated.has_teacher_changed or not updated.new_teacher_id:
        return False
    try:
        found = await remote.select(TEACHERS_TABLE, [eq("id", updated.new_teacher_id)], limit=1)
        row = found.unwrap("Failed to load teacher") and found.first()
        if not row:
            logger.warning("Form teacher %s not found; no notification sent", updated.new_teacher_id)
            return False
        teacher = normalize_teacher(row)
        await send_teacher_class_assignment_notification(
            documents,
            mailer,
            teacher.id,
            teacher.full_name or "Teacher",
            teacher.email,
            updated.data.name,
            updated.data.level,
        )
    except ServiceError as exc:
        logger.error("Class assignment notification for teacher %s failed: %s", updated.new_teacher_id, exc.message)
        return False
    return True


async def delete_class(remote: RemoteStore, writer: OfflineAwareWriter, school_id: str, class_id: str) -> bool:
    if not writer.is_connected:
        raise ServiceError(
            "Cannot delete a class while offline: enrolled students cannot be checked",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    existing = await get_class_by_id(remote, class_id)
    if not existing or existing.get("school_id") != school_id:
        return False
    enrolled = await remote.select(STUDENTS_TABLE, [eq("class_id", class_id)], limit=1)
    if enrolled.unwrap("Failed to check enrolled students"):
        raise ServiceError(STUDENTS_ENROLLED_MESSAGE, status.HTTP_400_BAD_REQUEST)
    await writer.delete(EntityType.CLASS, class_id, school_id=school_id)
    logger.info("Class %s deleted", class_id)
    return True


def _level_sort_key(level: str):
    parts = (level or "").split()
    family = parts[0] if parts else ""
    try:
        number = int(parts[-1])
    except (IndexError, ValueError):
        number = 0
    return family, number


async def list_classes_with_details(writer: OfflineAwareWriter, school_id: str) -> List[ClassWithDetails]:
    classes = await writer.list(EntityType.CLASS, school_id)
    teachers = {str(t["id"]): normalize_teacher(t) for t in await writer.list(EntityType.TEACHER, school_id)}
    students = await writer.list(EntityType.STUDENT, school_id)

    by_id: Dict[str, int] = {}
    by_name: Dict[str, int] = {}
    for student in students:
        if student.get("class_id"):
            by_id[student["class_id"]] = by_id.get(student["class_id"], 0) + 1
        elif student.get("class"):
            name = str(student["class"]).strip()
            by_name[name] = by_name.get(name, 0) + 1

    details = []
    for row in classes:
        count = by_id.get(row["id"], 0) + by_name.get(str(row.get("name", "")).strip(), 0)
        teacher = teachers.get(str(row.get("teacher_id")))
        capacity = row.get("capacity") or 0
        details.append(
            ClassWithDetails(
                **{
                    **row,
                    "students_count": count,
                    "teacher_name": teacher.full_name if teacher else None,
                    "teacher_email": teacher.email if teacher else None,
                    "occupancy_rate": round(count / capacity * 100) if capacity > 0 else 0,
                }
            )
        )
    details.sort(key=lambda c: _level_sort_key(c.level))
    return details


async def check_class_capacity(remote: RemoteStore, class_id: str) -> ClassCapacity:
    existing = await get_class_by_id(remote, class_id)
    if not existing:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    counted = await remote.count(STUDENTS_TABLE, [eq("class_id", class_id)])
    counted.unwrap("Failed to count students")
    current = counted.count or 0
    capacity = existing.get("capacity") or 0
    return ClassCapacity(current=current, capacity=capacity, available=capacity - current)


def get_class_metrics(classes: List[ClassWithDetails]) -> ClassMetrics:
    total_students = sum(c.students_count for c in classes)
    total_capacity = sum(c.capacity for c in classes)
    return ClassMetrics(
        total_classes=len(classes),
        total_students=total_students,
        total_capacity=total_capacity,
        average_occupancy=round(total_students / total_capacity * 100) if total_capacity > 0 else 0,
        full_classes=sum(1 for c in classes if c.students_count >= c.capacity),
        empty_classes=sum(1 for c in classes if c.students_count == 0),
    )
