from pydantic_settings import BaseSettings
from typing import List, Any
import json


DEFAULT_JWT_SECRET = "CHANGE_ME_IN_PRODUCTION"


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "iTECHS Learning Platform"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, production, test
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 5000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./itechs.db"
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 10080  # 7 days
    JWT_ISSUER: str = "iTECHS-Learning-Platform"
    JWT_AUDIENCE: str = "iTECHS-Users"
    BCRYPT_ROUNDS: int = 12  # 4 in tests (fast), 12 everywhere else

    # ==========================================
    # One-time passcodes (teacher login)
    # ==========================================
    OTP_EXPIRE_MINUTES: int = 30

    # ==========================================
    # Default super admin (created on startup if none exists)
    # ==========================================
    SUPER_ADMIN_EMAIL: str = "admin@itechs.edu"
    SUPER_ADMIN_USERNAME: str = ""  # Falls back to SUPER_ADMIN_EMAIL
    SUPER_ADMIN_PASSWORD: str = "Admin@123"
    CREATE_DEFAULT_SUPER_ADMIN: bool = True

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TLS: bool = True
    EMAIL_FROM: str = "noreply@itechs.edu"
    EMAIL_FROM_NAME: str = "iTECHS Learning Platform"

    # ==========================================
    # Frontend URL (used in email links)
    # ==========================================
    FRONTEND_URL: str = "http://localhost:3000"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://localhost:3001,http://127.0.0.1:3000,http://127.0.0.1:3001"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting (slowapi / limits notation)
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/15minutes"
    AUTH_RATE_LIMIT: str = "50/15minutes"
    RATE_LIMIT_STORAGE_URI: str = "memory://"  # redis://host:6379/0 in production

    # ==========================================
    # Requests
    # ==========================================
    MAX_REQUEST_SIZE: int = 10 * 1024 * 1024  # 10MB

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"  # Empty string disables the file handler

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


settings = Settings()
