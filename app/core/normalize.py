"""Canonical shapes for remote rows whose column names drifted over time
(email vs emailaddress, name vs adminname). Convert here, nowhere else."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class AdminProfile(BaseModel):
    id: str
    email: Optional[str] = None
    name: str = "Admin"
    role: str = "Principal"
    gender: Optional[str] = None
    school_id: Optional[str] = None
    school_name: Optional[str] = None
    has_logged_in_before: bool = False


class TeacherProfile(BaseModel):
    id: str
    school_id: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def _first(row: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_admin(row: Dict[str, Any]) -> AdminProfile:
    return AdminProfile(
        id=str(row["id"]),
        email=_first(row, "email", "emailaddress"),
        name=_first(row, "name", "adminname") or "Admin",
        role=row.get("role") or "Principal",
        gender=row.get("gender"),
        school_id=_first(row, "school_id") or str(row["id"]),
        school_name=_first(row, "schoolName", "school_name"),
        has_logged_in_before=bool(_first(row, "hasloggedinbefore", "hasLoggedInBefore")),
    )


def normalize_teacher(row: Dict[str, Any]) -> TeacherProfile:
    first = _first(row, "firstname", "first_name") or ""
    last = _first(row, "lastname", "last_name") or ""
    if not first and not last and row.get("name"):
        first = row["name"]
    return TeacherProfile(
        id=str(row["id"]),
        school_id=_first(row, "school_id"),
        first_name=first,
        last_name=last,
        email=_first(row, "email", "emailaddress"),
    )
