from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utc_now


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    SUPER_ADMIN = "SUPER_ADMIN"


class User(Base):
    """
    User model.

    Users are never deleted: archiving sets is_archived and writes an
    ArchivedUser snapshot, restoring reverses both.
    """
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole, name="user_role"), default=UserRole.STUDENT, nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)

    # Owning teacher (students only)
    teacher_id = Column(GUID, ForeignKey("users.id"), nullable=True, index=True)

    is_archived = Column(Boolean, default=False, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    # One-time passcode (teacher login); code and expiry are set together
    otp_code = Column(String(6), nullable=True)
    otp_expiry = Column(DateTime, nullable=True)
    otp_verified = Column(Boolean, default=False, nullable=False)

    # Timestamps
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.username

    def clear_otp(self) -> None:
        self.otp_code = None
        self.otp_expiry = None

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
