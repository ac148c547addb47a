from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.enums import AssignmentStatus


class SubjectAssignmentCreate(BaseModel):
    student_id: str
    subject_id: str
    academic_year: Optional[str] = None
    term: Optional[str] = None


class BulkSubjectAssignmentCreate(BaseModel):
    subject_id: str
    student_ids: List[str] = Field(..., min_length=1)
    academic_year: Optional[str] = None
    term: Optional[str] = None


class SubjectAssignmentResponse(BaseModel):
    id: str
    student_id: str
    subject_id: str
    school_id: str
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None
    academic_year: Optional[str] = None
    term: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.active

    class Config:
        from_attributes = True


class BulkAssignmentResult(BaseModel):
    assigned: List[SubjectAssignmentResponse] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)  # student ids


class TeacherSubjectAssignmentCreate(BaseModel):
    teacher_id: str
    subject_id: str


class TeacherSubjectAssignmentResponse(BaseModel):
    teacher_id: str
    subject_id: str
    subject_name: str
    subject_code: Optional[str] = None
    notification_id: Optional[str] = None
    offline: bool = False
