"""
iTECHS Learning Platform - Centralized Logging Configuration
JSON structured logs in production, readable contextual lines everywhere else
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from app.core.config import settings


# Context variables for request tracing
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'message', 'taskName', 'request_id', 'user_id',
])


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    """Short request id used in X-Request-ID when the client sent none"""
    return str(uuid.uuid4())[:8]


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in production.
    One object per line, ready for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        user_id = get_user_id()
        if user_id:
            log_data["user_id"] = user_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """Readable formatter that fills request_id / user_id from the context vars"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return super().format(record)


class PlatformLogger(logging.Logger):
    """
    Logger with convenience methods for the events this service cares about
    """

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        """Log HTTP request details"""
        level = logging.WARNING if status_code >= 500 else logging.INFO
        self.log(
            level,
            f"HTTP {method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": duration_ms,
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """Log authentication events (login, otp, logout, password changes)"""
        level = logging.INFO if success else logging.WARNING
        self.log(
            level,
            f"Auth {event}: {'success' if success else 'failed'}" +
            (f" - {user_email}" if user_email else "") +
            (f" - {reason}" if reason else ""),
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "user_email": user_email,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_account_event(self, event: str, actor_id: str, target_id: str, **kwargs) -> None:
        """Log account lifecycle changes (create, archive, restore, reset)"""
        self.info(
            f"Account {event}: {target_id} by {actor_id}",
            extra={
                "event_type": "account",
                "account_event": event,
                "actor_id": actor_id,
                "target_id": target_id,
                **kwargs
            }
        )

    def log_security_event(self, event: str, **kwargs) -> None:
        """Log denied or suspicious requests"""
        self.warning(
            f"Security: {event}",
            extra={"event_type": "security", "security_event": event, **kwargs}
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None,
                               **kwargs) -> None:
        """Log error with full context"""
        self.error(
            f"Error in {context}: {type(error).__name__}: {str(error)}",
            exc_info=True,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_context": context,
                **kwargs
            }
        )


def setup_logging() -> PlatformLogger:
    """Setup logging configuration based on environment"""

    logging.setLoggerClass(PlatformLogger)

    logger = logging.getLogger("itechs")
    logger.__class__ = PlatformLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.propagate = False

    logger.handlers.clear()

    is_production = settings.is_production

    if is_production:
        formatter: logging.Formatter = JSONFormatter()
        file_formatter: logging.Formatter = formatter
        backup_count = 10
    else:
        formatter = ContextualFormatter("%(levelname)-8s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | "
            "[%(request_id)s] [%(user_id)s] | "
            "%(funcName)s:%(lineno)d | %(message)s"
        )
        backup_count = 5

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=backup_count
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)

    logger.debug(
        "Logging initialized",
        extra={
            "environment": settings.ENVIRONMENT,
            "log_level": settings.LOG_LEVEL,
            "json_logging": is_production
        }
    )

    return logger


logger: PlatformLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'PlatformLogger',
    'JSONFormatter',
    'ContextualFormatter',
]
