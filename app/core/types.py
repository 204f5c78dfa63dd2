"""Custom SQLAlchemy types and time helpers shared by the models"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import TypeDecorator, String


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Naive UTC timestamp (the format every DateTime column stores)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value
