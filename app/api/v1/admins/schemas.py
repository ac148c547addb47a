from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import SchoolStage


class AdminProvisionRequest(BaseModel):
    adminname: str = Field(..., min_length=1)
    emailaddress: EmailStr
    password: str = Field(..., min_length=6)
    gender: Optional[str] = None
    role: str = "Principal"
    schoolName: str = Field(..., min_length=1)
    schoolStage: SchoolStage

    class Config:
        str_strip_whitespace = True


class AdminProvisionResponse(BaseModel):
    admin_id: str
    school_id: str
    email: str
    name: str
    role: str
    school_name: str
    stage: str
    welcome_notification_id: Optional[str] = None
