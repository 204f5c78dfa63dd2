from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Enum as SQLEnum, ForeignKey

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utc_now
from app.models.user import UserRole


class ArchivedUser(Base):
    """
    Snapshot of a user taken at archive time.

    One row per archived user (original_user_id is unique); the row is
    removed again when the user is restored. `snapshot` holds a
    UserSnapshot document tagged with `snapshot_version`.
    """
    __tablename__ = "archived_users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    original_user_id = Column(GUID, ForeignKey("users.id"), unique=True, nullable=False, index=True)

    # Denormalised copies for listing archived accounts without parsing the snapshot
    username = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole, name="user_role"), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    teacher_id = Column(GUID, nullable=True, index=True)

    snapshot_version = Column(Integer, nullable=False, default=1)
    snapshot = Column(JSON, nullable=False)

    archived_by = Column(GUID, ForeignKey("users.id"), nullable=True)
    archive_reason = Column(Text, nullable=True)
    archived_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<ArchivedUser {self.username}>"
