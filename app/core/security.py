from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
import bcrypt
import secrets

from app.core.config import settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against a bcrypt hash. Raises ValueError on a malformed hash."""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with the configured cost factor (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def generate_temporary_password() -> str:
    """Random password that always satisfies the password policy"""
    return secrets.token_hex(8) + "aA1!"


class TokenService:
    """
    Signs and verifies bearer tokens.

    Claims carried by every access token: id, username, email, role
    (plus sub/iat/exp/iss/aud/type).
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 10080,
        issuer: str = "iTECHS-Learning-Platform",
        audience: str = "iTECHS-Users",
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def from_settings(cls) -> "TokenService":
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.JWT_EXPIRE_MINUTES,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
        )

    def issue(self, user, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed access token for a user"""
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        role = getattr(user.role, "value", user.role)

        to_encode: Dict[str, Any] = {
            "sub": str(user.id),
            "id": str(user.id),
            "username": user.username,
            "email": user.email,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "iss": self.issuer,
            "aud": self.audience,
            "type": "access",
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """Decode and validate a token, returning its claims"""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise InvalidTokenError()

        if payload.get("type") != "access" or not payload.get("id"):
            raise InvalidTokenError("Invalid token type")

        return payload
