"""
Unit Tests for UserService: creation, authentication and archive / restore
"""
import pytest
from sqlalchemy import select, func

from app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    UserNotFoundError,
    ValidationError,
)
from app.core.security import verify_password
from app.models.archived_user import ArchivedUser
from app.models.user import UserRole
from app.schemas.user import SNAPSHOT_VERSION, UserCreate, UserUpdate
from app.services.user_service import UserService

DEFAULT_PASSWORD = "Secret@123"


@pytest.fixture
def users(db_session):
    return UserService(db_session)


async def archived_rows(db_session, user_id) -> int:
    return await db_session.scalar(
        select(func.count()).select_from(ArchivedUser).where(ArchivedUser.original_user_id == user_id)
    )


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_valid_credentials(self, users, student):
        user = await users.authenticate(student.username, DEFAULT_PASSWORD)
        assert user.id == student.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, users, student):
        with pytest.raises(AuthenticationError) as exc_info:
            await users.authenticate(student.username, "Wrong@123")
        assert exc_info.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_unknown_user(self, users):
        with pytest.raises(AuthenticationError):
            await users.authenticate("ghost@student.com", DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_archived_user(self, users, create_user):
        archived = await create_user(UserRole.STUDENT, is_archived=True)

        with pytest.raises(AuthenticationError) as exc_info:
            await users.authenticate(archived.username, DEFAULT_PASSWORD)
        assert exc_info.value.message == "Account has been archived"


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_teacher_creates_owned_student_with_generated_credentials(self, users, teacher):
        data = UserCreate(role=UserRole.STUDENT, email="Alice@Example.com", first_name="Alice")

        user, temporary_password = await users.create_user(teacher, data)

        assert user.username == "alice@student.com"
        assert user.email == "alice@example.com"
        assert user.teacher_id == teacher.id
        assert user.is_verified is True
        assert temporary_password
        assert verify_password(temporary_password, user.password_hash)

    @pytest.mark.asyncio
    async def test_supplied_password_is_not_returned(self, users, teacher):
        data = UserCreate(role=UserRole.STUDENT, email="bob@example.com", password="Strong@123")

        user, temporary_password = await users.create_user(teacher, data)

        assert temporary_password is None
        assert verify_password("Strong@123", user.password_hash)

    @pytest.mark.asyncio
    async def test_teacher_cannot_create_teacher(self, users, teacher):
        data = UserCreate(role=UserRole.TEACHER, email="carol@example.com")

        with pytest.raises(AuthorizationError):
            await users.create_user(teacher, data)

    @pytest.mark.asyncio
    async def test_super_admin_student_requires_teacher(self, users, super_admin, student):
        data = UserCreate(role=UserRole.STUDENT, email="dave@example.com")
        with pytest.raises(ValidationError):
            await users.create_user(super_admin, data)

        data = UserCreate(role=UserRole.STUDENT, email="dave@example.com", teacher_id=student.id)
        with pytest.raises(ValidationError):
            await users.create_user(super_admin, data)

    @pytest.mark.asyncio
    async def test_super_admin_assigns_teacher(self, users, super_admin, teacher):
        data = UserCreate(role=UserRole.STUDENT, email="erin@example.com", teacher_id=teacher.id)

        user, _ = await users.create_user(super_admin, data)

        assert user.teacher_id == teacher.id

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, users, teacher, student):
        data = UserCreate(role=UserRole.STUDENT, email=student.email)

        with pytest.raises(ConflictError):
            await users.create_user(teacher, data)


class TestArchiveRestore:

    @pytest.mark.asyncio
    async def test_round_trip(self, users, db_session, teacher, student):
        archived = await users.archive(teacher, student.id, reason="Left the course")

        assert student.is_archived is True
        assert archived.original_user_id == student.id
        assert archived.archived_by == teacher.id
        assert archived.archive_reason == "Left the course"
        assert archived.snapshot_version == SNAPSHOT_VERSION
        assert archived.snapshot["username"] == student.username
        assert archived.snapshot["schema_version"] == SNAPSHOT_VERSION
        assert "password_hash" not in archived.snapshot
        assert await archived_rows(db_session, student.id) == 1

        restored = await users.restore(teacher, student.id)

        assert restored.is_archived is False
        assert await archived_rows(db_session, student.id) == 0

    @pytest.mark.asyncio
    async def test_cannot_archive_self(self, users, super_admin):
        with pytest.raises(ValidationError) as exc_info:
            await users.archive(super_admin, super_admin.id)
        assert exc_info.value.message == "Cannot archive your own account"

    @pytest.mark.asyncio
    async def test_teacher_cannot_archive_foreign_student(self, users, db_session, other_teacher, student):
        with pytest.raises(AuthorizationError):
            await users.archive(other_teacher, student.id)

        assert student.is_archived is False
        assert await archived_rows(db_session, student.id) == 0

    @pytest.mark.asyncio
    async def test_double_archive_rejected(self, users, db_session, super_admin, student):
        await users.archive(super_admin, student.id)

        with pytest.raises(ValidationError) as exc_info:
            await users.archive(super_admin, student.id)
        assert exc_info.value.message == "User is already archived"
        assert await archived_rows(db_session, student.id) == 1

    @pytest.mark.asyncio
    async def test_restore_requires_archived_user(self, users, super_admin, student):
        with pytest.raises(ValidationError) as exc_info:
            await users.restore(super_admin, student.id)
        assert exc_info.value.message == "User is not archived"

    @pytest.mark.asyncio
    async def test_archive_missing_user(self, users, super_admin):
        with pytest.raises(UserNotFoundError):
            await users.archive(super_admin, "00000000-0000-0000-0000-000000000000")

    @pytest.mark.asyncio
    async def test_update_routes_archival_through_archive(self, users, db_session, super_admin, student):
        await users.update_user(super_admin, student.id, UserUpdate(is_archived=True))

        assert student.is_archived is True
        assert await archived_rows(db_session, student.id) == 1

        await users.update_user(super_admin, student.id, UserUpdate(is_archived=False))

        assert student.is_archived is False
        assert await archived_rows(db_session, student.id) == 0

    @pytest.mark.asyncio
    async def test_teacher_cannot_toggle_archival_through_update(self, users, teacher, student):
        with pytest.raises(AuthorizationError):
            await users.update_user(teacher, student.id, UserUpdate(is_archived=True))

    @pytest.mark.asyncio
    async def test_rejected_self_archival_leaves_profile_untouched(self, users, db_session, super_admin):
        original_last_name = super_admin.last_name

        with pytest.raises(ValidationError) as exc_info:
            await users.update_user(super_admin, super_admin.id, UserUpdate(last_name="Changed", is_archived=True))
        assert exc_info.value.message == "Cannot archive your own account"

        await db_session.refresh(super_admin)
        assert super_admin.last_name == original_last_name
        assert super_admin.is_archived is False


class TestUpdateUser:

    @pytest.mark.asyncio
    async def test_teacher_updates_own_student(self, users, teacher, student):
        updated = await users.update_user(teacher, student.id, UserUpdate(first_name="Rosa"))

        assert updated.first_name == "Rosa"

    @pytest.mark.asyncio
    async def test_teacher_cannot_update_foreign_student(self, users, db_session, other_teacher, student):
        original_first_name = student.first_name

        with pytest.raises(AuthorizationError):
            await users.update_user(other_teacher, student.id, UserUpdate(first_name="Rosa"))

        await db_session.refresh(student)
        assert student.first_name == original_first_name


class TestPasswords:

    @pytest.mark.asyncio
    async def test_change_password(self, users, student):
        await users.change_password(student, DEFAULT_PASSWORD, "Changed@123")

        assert verify_password("Changed@123", student.password_hash)

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, users, student):
        with pytest.raises(ValidationError) as exc_info:
            await users.change_password(student, "Wrong@123", "Changed@123")
        assert exc_info.value.message == "Current password is incorrect"

    @pytest.mark.asyncio
    async def test_reset_password(self, users, teacher, student):
        user, temporary_password = await users.reset_password(teacher, student.id)

        assert verify_password(temporary_password, user.password_hash)
        assert not verify_password(DEFAULT_PASSWORD, user.password_hash)
