# Authentication module

from app.modules.auth.dependencies import (
    get_current_user,
    get_token_service,
    get_email_service,
    get_user_service,
    get_exam_service,
    get_otp_service,
)

__all__ = [
    "get_current_user",
    "get_token_service",
    "get_email_service",
    "get_user_service",
    "get_exam_service",
    "get_otp_service",
]
