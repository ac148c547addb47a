from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember_me: Optional[bool] = None


class AdminInfo(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: str
    gender: Optional[str] = None
    school_id: Optional[str] = None
    school_name: Optional[str] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminInfo
    first_login: bool  # hasloggedinbefore was not set on the admin row
    issued_at: datetime


class OAuthUrlResponse(BaseModel):
    provider: str
    url: str


class SchoolInfo(BaseModel):
    school_id: str
    school_name: str
    stage: Optional[str] = None


class MeResponse(BaseModel):
    admin: AdminInfo
    school: SchoolInfo


class CurrentUser(BaseModel):
    """Claims carried by the access token."""

    admin_id: str
    school_id: str
    role: str
    email: Optional[str] = None
    name: Optional[str] = None
    school_name: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None
    newPassword: Optional[str] = Field(None, description="New password for the auth account")


class MessageResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class FirstLoginRequest(BaseModel):
    new_password: Optional[str] = Field(None, min_length=6)
