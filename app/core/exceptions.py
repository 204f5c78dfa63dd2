"""
Custom Exceptions for the iTECHS Learning Platform
==================================================

Every recoverable failure raised by services and dependencies derives from
PlatformError. The exception handlers in app.main render them into the
standard response envelope using `status_code`.

Usage:
    from app.core.exceptions import UserNotFoundError, AuthorizationError

    if not user:
        raise UserNotFoundError(user_id)

    if not is_allowed(Action.UPDATE_USER, actor, user):
        raise AuthorizationError("Insufficient permissions")
"""

from typing import Optional, Any, Dict


class PlatformError(Exception):
    """Base exception for all platform errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PlatformError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(PlatformError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, code="NOT_AUTHORIZED")


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""

    def __init__(self):
        super().__init__("Token has expired")
        self.code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid"""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


# ============================================
# One-time passcode errors (400, not 401)
# ============================================

class OTPError(PlatformError):
    """OTP verification failed"""

    status_code = 400


class OTPInvalidError(OTPError):
    def __init__(self):
        super().__init__("Invalid OTP code", code="OTP_INVALID")


class OTPExpiredError(OTPError):
    def __init__(self):
        super().__init__("OTP has expired. Please request a new one.", code="OTP_EXPIRED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PlatformError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: Optional[str] = None):
        super().__init__("User", user_id)


class ExamNotFoundError(ResourceNotFoundError):
    """Exam not found"""

    def __init__(self, exam_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__("Exam", exam_id, message=message)


# ============================================
# Validation / State Errors (400-type)
# ============================================

class ValidationError(PlatformError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(PlatformError):
    """Unique constraint or duplicate state conflict"""

    status_code = 409

    def __init__(self, message: str = "A record with this information already exists"):
        super().__init__(message, code="CONFLICT")


# ============================================
# Helper function for API responses
# ============================================

def error_response(
    message: str,
    details: Optional[Any] = None,
    errors: Optional[list] = None,
) -> Dict[str, Any]:
    """Build the error envelope returned to clients"""
    body: Dict[str, Any] = {"status": "error", "message": message}
    if details is not None:
        body["details"] = details
    if errors is not None:
        body["errors"] = errors
    return body
