"""Small helpers shared by the user and exam services"""
import secrets
import string

from app.models.user import UserRole

EXAM_CODE_ALPHABET = string.ascii_uppercase + string.digits
EXAM_CODE_LENGTH = 6

USERNAME_SUFFIXES = {
    UserRole.STUDENT: "@student.com",
    UserRole.TEACHER: "@teacher.com",
}


def generate_username(email: str, role: UserRole) -> str:
    """
    Derive a username from an email address.

    Students and teachers get a role suffix (jane@student.com,
    john@teacher.com); super admins keep their email.
    """
    if role == UserRole.SUPER_ADMIN:
        return email.lower()
    local_part = email.split("@")[0].lower()
    return f"{local_part}{USERNAME_SUFFIXES[role]}"


def generate_exam_code(length: int = EXAM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(EXAM_CODE_ALPHABET) for _ in range(length))


def generate_otp_code() -> str:
    """Six digit numeric code, 100000-999999"""
    return str(100000 + secrets.randbelow(900000))


def mask_email(email: str) -> str:
    """j***n@example.com"""
    local, _, domain = email.partition("@")
    if len(local) <= 2:
        masked = local[:1] + "*" * max(len(local) - 1, 1)
    else:
        masked = local[0] + "*" * (len(local) - 2) + local[-1]
    return f"{masked}@{domain}"
