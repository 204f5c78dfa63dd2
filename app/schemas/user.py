from pydantic import EmailStr, Field, field_validator, ValidationInfo
from typing import Optional
from datetime import datetime

from app.models.user import UserRole
from app.schemas.common import (
    CamelModel,
    normalize_email,
    validate_password_strength,
    validate_person_name,
    validate_role_based_username,
)


SNAPSHOT_VERSION = 1


class UserResponse(CamelModel):
    id: str
    username: str
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    teacher_id: Optional[str] = None
    is_archived: bool
    is_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    """Compact user reference embedded in exams and scores"""
    id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ProfileCounts(CamelModel):
    created_students: int = 0
    created_exams: int = 0
    scores: int = 0
    enrolled_exams: int = 0


class ProfileResponse(UserResponse):
    counts: ProfileCounts


class UserCreate(CamelModel):
    """
    Account creation by a super admin or teacher.

    username and password are optional: a role-suffixed username is derived
    from the email and a temporary password is generated when omitted.
    """
    role: UserRole
    email: EmailStr
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    teacher_id: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is None:
            return v
        return validate_role_based_username(v.strip(), info.data.get("role"))

    @field_validator("password")
    @classmethod
    def check_password(cls, v: Optional[str]) -> Optional[str]:
        return validate_password_strength(v) if v is not None else v

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_person_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def check_last_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_person_name(v, "Last name")


class UserUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    is_archived: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_person_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def check_last_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_person_name(v, "Last name")


class UserCreatedResponse(CamelModel):
    user: UserResponse
    temporary_password: Optional[str] = None


class UserSnapshot(CamelModel):
    """
    Versioned copy of a user row stored with an ArchivedUser.

    Relational collections and the password hash are left out.
    """
    schema_version: int = SNAPSHOT_VERSION
    id: str
    username: str
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    teacher_id: Optional[str] = None
    is_verified: bool = False
    otp_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ArchivedUserResponse(CamelModel):
    id: str
    original_user_id: str
    username: str
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    teacher_id: Optional[str] = None
    snapshot_version: int
    archived_by: Optional[str] = None
    archive_reason: Optional[str] = None
    archived_at: datetime

