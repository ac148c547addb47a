from typing import Optional

from pydantic import BaseModel, ConfigDict


class SendEmailRequest(BaseModel):
    """Loose body: type-specific fields are optional and extra keys are kept."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    adminId: Optional[str] = None
    teacherId: Optional[str] = None
    subjectName: Optional[str] = None
    subjectCode: Optional[str] = None
    className: Optional[str] = None
    classLevel: Optional[str] = None
    code: Optional[str] = None


class SendEmailResponse(BaseModel):
    success: bool
    simulated: bool
    message: str
