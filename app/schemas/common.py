import re
from typing import Any, Dict, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from app.models.user import UserRole


PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&_#-])[A-Za-z\d@$!%*?&_#-]+$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")

PASSWORD_RULES_MESSAGE = (
    "must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character (@$!%*?&_#-)"
)


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def validate_password_strength(value: str, label: str = "Password") -> str:
    if len(value) < 8:
        raise ValueError(f"{label} must be at least 8 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(f"{label} {PASSWORD_RULES_MESSAGE}")
    return value


def validate_person_name(value: Optional[str], label: str) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not 2 <= len(value) <= 30:
        raise ValueError(f"{label} must be between 2 and 30 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError(f"{label} can only contain letters and spaces")
    return value


def normalize_email(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else value


def validate_role_based_username(username: str, role: Optional[UserRole]) -> str:
    """Students and teachers carry a role suffix in their username"""
    if role == UserRole.STUDENT and not username.endswith("@student.com"):
        raise ValueError("Student username must end with @student.com")
    if role == UserRole.TEACHER and not username.endswith("@teacher.com"):
        raise ValueError("Teacher username must end with @teacher.com")
    if role == UserRole.SUPER_ADMIN and "@" not in username:
        raise ValueError("Super admin username must be a valid email")
    return username


class PaginationMeta(CamelModel):
    current_page: int
    page_size: int
    total_pages: int
    total_records: int
    has_next: bool
    has_prev: bool


def dump(model: BaseModel) -> Dict[str, Any]:
    """Serialize a schema the way it goes over the wire"""
    return model.model_dump(by_alias=True, mode="json")
