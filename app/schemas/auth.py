from pydantic import EmailStr, Field, field_validator, model_validator, ValidationInfo
from typing import Optional

from app.models.user import UserRole
from app.schemas.common import (
    CamelModel,
    normalize_email,
    validate_password_strength,
    validate_person_name,
    validate_role_based_username,
)
from app.schemas.user import UserResponse


class UserRegister(CamelModel):
    """Account registration by an authenticated super admin or teacher"""
    role: UserRole
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    teacher_id: Optional[str] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str, info: ValidationInfo) -> str:
        return validate_role_based_username(v.strip(), info.data.get("role"))

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("first_name")
    @classmethod
    def check_first_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_person_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def check_last_name(cls, v: Optional[str]) -> Optional[str]:
        return validate_person_name(v, "Last name")


class UserLogin(CamelModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class OTPVerifyRequest(CamelModel):
    email: EmailStr
    otp_code: str = Field(..., min_length=6, max_length=6)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("otp_code")
    @classmethod
    def numeric_otp(cls, v: str) -> str:
        if not v.isdigit():
            raise ValueError("OTP must contain only numbers")
        return v


class OTPRequest(CamelModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None

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


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, v: str) -> str:
        return validate_password_strength(v, "New password")

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Password confirmation does not match new password")
        return self


class LoginResponse(CamelModel):
    token: str
    user: UserResponse


class OTPChallengeResponse(CamelModel):
    """Returned instead of a token when the account must confirm an OTP"""
    requires_otp: bool = Field(True, alias="requiresOTP")
    user_id: str
    email: str
    masked_email: str


class TokenResponse(CamelModel):
    token: str
