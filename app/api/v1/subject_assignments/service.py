import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import status

from app.api.v1.notifications.service import send_teacher_subject_assignment_notification
from app.core.email_service import EmailService
from app.core.enums import AssignmentStatus, EntityType
from app.core.exceptions import ServiceError
from app.core.normalize import normalize_teacher
from app.remote.base import RemoteStore, eq, in_
from app.remote.documents import SUBJECT_ASSIGNMENTS, DocumentStore
from app.sync.writer import OfflineAwareWriter

from .schemas import (
    BulkAssignmentResult,
    SubjectAssignmentCreate,
    SubjectAssignmentResponse,
    TeacherSubjectAssignmentCreate,
    TeacherSubjectAssignmentResponse,
)

logger = logging.getLogger(__name__)

STUDENTS_TABLE = "students"
SUBJECTS_TABLE = "subjects"

ALREADY_ASSIGNED_MESSAGE = "Student is already assigned to this subject"


def _assignment_id() -> str:
    return f"SA_{uuid.uuid4().hex[:12]}"


async def assign_student_to_subject(
    documents: DocumentStore,
    school_id: str,
    admin_id: str,
    payload: SubjectAssignmentCreate,
) -> SubjectAssignmentResponse:
    existing = await documents.query(
        SUBJECT_ASSIGNMENTS,
        [
            eq("student_id", payload.student_id),
            eq("subject_id", payload.subject_id),
            eq("school_id", school_id),
            eq("status", AssignmentStatus.active.value),
        ],
    )
    if existing.unwrap("Failed to check existing assignments"):
        raise ServiceError(ALREADY_ASSIGNED_MESSAGE, status.HTTP_409_CONFLICT)

    data = {
        "student_id": payload.student_id,
        "subject_id": payload.subject_id,
        "school_id": school_id,
        "assigned_by": admin_id,
        "assigned_at": datetime.now(timezone.utc).isoformat(),
        "academic_year": payload.academic_year,
        "term": payload.term,
        "status": AssignmentStatus.active.value,
    }
    assignment_id = _assignment_id()
    stored = await documents.set(SUBJECT_ASSIGNMENTS, assignment_id, data)
    stored.unwrap("Error assigning student to subject")
    return SubjectAssignmentResponse(id=assignment_id, **data)


async def bulk_assign_students_to_subject(
    documents: DocumentStore,
    school_id: str,
    admin_id: str,
    student_ids: List[str],
    subject_id: str,
    academic_year: Optional[str] = None,
    term: Optional[str] = None,
) -> BulkAssignmentResult:
    """Assign each student in turn; a student that fails is logged and skipped."""
    result = BulkAssignmentResult()
    for student_id in student_ids:
        try:
            assignment = await assign_student_to_subject(
                documents,
                school_id,
                admin_id,
                SubjectAssignmentCreate(
                    student_id=student_id, subject_id=subject_id, academic_year=academic_year, term=term
                ),
            )
        except ServiceError as exc:
            logger.warning("Failed to assign student %s to subject %s: %s", student_id, subject_id, exc.message)
            result.skipped.append(student_id)
            continue
        result.assigned.append(assignment)
    return result


async def _owned_assignment(documents: DocumentStore, school_id: str, assignment_id: str) -> Optional[Dict[str, Any]]:
    found = await documents.get(SUBJECT_ASSIGNMENTS, assignment_id)
    row = found.unwrap("Failed to load assignment")
    if not row or row.get("school_id") != school_id:
        return None
    return row


async def deactivate_assignment(
    documents: DocumentStore, school_id: str, assignment_id: str
) -> Optional[SubjectAssignmentResponse]:
    row = await _owned_assignment(documents, school_id, assignment_id)
    if row is None:
        return None
    updated = await documents.update(SUBJECT_ASSIGNMENTS, assignment_id, {"status": AssignmentStatus.inactive.value})
    updated.unwrap("Failed to deactivate assignment")
    return SubjectAssignmentResponse.model_validate({**row, "status": AssignmentStatus.inactive.value})


async def remove_student_from_subject(documents: DocumentStore, school_id: str, assignment_id: str) -> bool:
    if await _owned_assignment(documents, school_id, assignment_id) is None:
        return False
    removed = await documents.delete(SUBJECT_ASSIGNMENTS, assignment_id)
    removed.unwrap("Error removing student from subject")
    return True


async def get_subject_assignments(
    documents: DocumentStore, school_id: str, active_only: bool = False
) -> List[SubjectAssignmentResponse]:
    filters = [eq("school_id", school_id)]
    if active_only:
        filters.append(eq("status", AssignmentStatus.active.value))
    result = await documents.query(SUBJECT_ASSIGNMENTS, filters)
    return [SubjectAssignmentResponse.model_validate(r) for r in result.unwrap("Error fetching subject assignments")]


async def get_students_for_subject(
    documents: DocumentStore, remote: RemoteStore, school_id: str, subject_id: str
) -> List[Dict[str, Any]]:
    assignments = await documents.query(
        SUBJECT_ASSIGNMENTS,
        [eq("subject_id", subject_id), eq("school_id", school_id), eq("status", AssignmentStatus.active.value)],
    )
    student_ids = [a["student_id"] for a in assignments.unwrap("Error fetching students for subject")]
    if not student_ids:
        return []
    students = await remote.select(STUDENTS_TABLE, [eq("school_id", school_id), in_("id", student_ids)])
    return students.unwrap("Error fetching students for subject") or []


async def get_subjects_for_student(
    documents: DocumentStore, remote: RemoteStore, school_id: str, student_id: str
) -> List[Dict[str, Any]]:
    assignments = await documents.query(
        SUBJECT_ASSIGNMENTS,
        [eq("student_id", student_id), eq("school_id", school_id), eq("status", AssignmentStatus.active.value)],
    )
    subject_ids = [a["subject_id"] for a in assignments.unwrap("Error fetching subjects for student")]
    if not subject_ids:
        return []
    subjects = await remote.select(SUBJECTS_TABLE, [eq("school_id", school_id), in_("id", subject_ids)])
    return subjects.unwrap("Error fetching subjects for student") or []


async def assign_teacher_to_subject(
    writer: OfflineAwareWriter,
    documents: DocumentStore,
    mailer: EmailService,
    school_id: str,
    payload: TeacherSubjectAssignmentCreate,
) -> TeacherSubjectAssignmentResponse:
    """Set the subject's teacher, then notify the teacher. The notification is best-effort."""
    subject = await writer.get(EntityType.SUBJECT, payload.subject_id)
    if subject is None or subject.data.get("school_id") != school_id:
        raise ServiceError("Subject not found", status.HTTP_404_NOT_FOUND)
    teacher_row = await writer.get(EntityType.TEACHER, payload.teacher_id)
    if teacher_row is None:
        raise ServiceError("Selected teacher does not exist", status.HTTP_400_BAD_REQUEST)
    teacher = normalize_teacher(teacher_row.data)
    if teacher.school_id != school_id:
        raise ServiceError("Selected teacher does not belong to this school", status.HTTP_400_BAD_REQUEST)

    outcome = await writer.update(
        EntityType.SUBJECT, payload.subject_id, {"teacher_id": teacher.id}, school_id=school_id
    )
    subject_name = subject.data.get("name") or subject.data.get("subject_name") or "Subject"
    subject_code = subject.data.get("code") or subject.data.get("subject_code") or ""
    response = TeacherSubjectAssignmentResponse(
        teacher_id=teacher.id,
        subject_id=payload.subject_id,
        subject_name=subject_name,
        subject_code=subject_code or None,
        offline=outcome.offline,
    )

    try:
        response.notification_id = await send_teacher_subject_assignment_notification(
            documents, mailer, teacher.id, teacher.full_name or "Teacher", teacher.email, subject_name, subject_code
        )
    except ServiceError as exc:
        logger.error("Subject assignment notification for teacher %s failed: %s", teacher.id, exc.message)
    return response
