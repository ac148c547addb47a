from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    level: str = Field(..., min_length=1)
    section: Optional[str] = None
    capacity: int = Field(..., ge=1, le=1000)
    teacher_id: Optional[str] = None  # form teacher
    description: Optional[str] = None

    class Config:
        str_strip_whitespace = True


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    level: Optional[str] = Field(None, min_length=1)
    section: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1, le=1000)
    teacher_id: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    previous_teacher_id: Optional[str] = Field(
        None, description="Form teacher the client saw before editing; defaults to the stored one"
    )

    class Config:
        str_strip_whitespace = True


class ClassResponse(BaseModel):
    id: str
    school_id: str
    school_name: Optional[str] = None
    name: str
    level: str
    section: Optional[str] = None
    capacity: int
    teacher_id: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    students_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClassWithDetails(ClassResponse):
    teacher_name: Optional[str] = None
    teacher_email: Optional[str] = None
    occupancy_rate: int = 0


class ClassValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ClassMutationResponse(BaseModel):
    data: ClassResponse
    warnings: List[str] = Field(default_factory=list)
    offline: bool = False


class ClassUpdateResult(ClassMutationResponse):
    previous_teacher_id: Optional[str] = None
    new_teacher_id: Optional[str] = None
    has_teacher_changed: bool = False
    teacher_notified: bool = False


class ClassCapacity(BaseModel):
    current: int
    capacity: int
    available: int


class ClassMetrics(BaseModel):
    total_classes: int
    total_students: int
    total_capacity: int
    average_occupancy: int
    full_classes: int
    empty_classes: int


class LevelOptions(BaseModel):
    stage: Optional[str] = None
    levels: List[str]
