from app.services.email_service import EmailService
from app.services.otp_service import OTPService
from app.services.user_service import UserService
from app.services.exam_service import ExamService

__all__ = [
    "EmailService",
    "OTPService",
    "UserService",
    "ExamService",
]
