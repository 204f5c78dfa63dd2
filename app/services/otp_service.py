"""
One-time passcodes for teacher login.

Lifecycle per user: no code -> issued (code + expiry stored) -> consumed
on a successful verification, or left in place after a failed one until
it is overwritten by the next issue.
"""
import hmac
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AuthenticationError, OTPExpiredError, OTPInvalidError
from app.core.types import utc_now
from app.models.user import User
from app.utils.helpers import generate_otp_code


class OTPService:
    """Issues and verifies login codes stored on the user row"""

    def __init__(
        self,
        db: AsyncSession,
        expire_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.expire_minutes = expire_minutes if expire_minutes is not None else settings.OTP_EXPIRE_MINUTES
        self.clock = clock

    async def issue(self, user: User) -> str:
        """Store a fresh code on the user, replacing any unconsumed one"""
        code = generate_otp_code()
        user.otp_code = code
        user.otp_expiry = self.clock() + timedelta(minutes=self.expire_minutes)
        user.otp_verified = False
        await self.db.commit()
        return code

    async def verify(self, email: str, code: str) -> User:
        """
        Consume the code for `email`.

        Raises OTPInvalidError for an unknown email or a wrong code and
        OTPExpiredError once the expiry is reached, and AuthenticationError
        for an archived account; none of them touches the stored code.
        """
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if user is None or not user.otp_code or user.otp_expiry is None:
            raise OTPInvalidError()

        if not hmac.compare_digest(user.otp_code, code):
            raise OTPInvalidError()

        now = self.clock()
        if now >= user.otp_expiry:
            raise OTPExpiredError()

        if user.is_archived:
            raise AuthenticationError("Account has been archived")

        user.clear_otp()
        user.otp_verified = True
        user.is_verified = True
        user.last_login = now
        await self.db.commit()
        return user
