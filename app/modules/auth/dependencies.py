from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import AuthenticationError, InvalidTokenError
from app.core.logging_config import set_user_id
from app.core.security import TokenService
from app.models.user import User
from app.services.email_service import EmailService
from app.services.exam_service import ExamService
from app.services.otp_service import OTPService
from app.services.user_service import UserService

security = HTTPBearer(auto_error=False)


# ==================== Process-scoped services (built in app.main) ====================

def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


# ==================== Request-scoped services ====================

def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def get_exam_service(db: AsyncSession = Depends(get_db)) -> ExamService:
    return ExamService(db)


def get_otp_service(db: AsyncSession = Depends(get_db)) -> OTPService:
    return OTPService(db)


# ==================== Current user ====================

async def _resolve_user(token: str, db: AsyncSession, token_service: TokenService) -> User:
    payload = token_service.verify(token)

    user = await db.get(User, str(payload["id"]))
    if user is None:
        raise InvalidTokenError("User not found")

    if user.is_archived:
        raise AuthenticationError("Account has been archived")

    set_user_id(str(user.id))
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> User:
    """Get current authenticated user from the bearer token"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token is required")

    return await _resolve_user(credentials.credentials, db, token_service)
