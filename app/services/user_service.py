"""
User accounts: creation, lookup, updates, password management and the
archive / restore lifecycle.

All permission decisions go through app.core.permissions; this module only
decides *what* happens once an action is allowed.
"""
from typing import Optional, Tuple, Union

from sqlalchemy import select, func, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthenticationError,
    ConflictError,
    UserNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger
from app.core.permissions import Action, authorize
from app.core.security import generate_temporary_password, get_password_hash, verify_password
from app.core.types import utc_now
from app.models.archived_user import ArchivedUser
from app.models.exam import Exam, Score, exam_students
from app.models.user import User, UserRole
from app.schemas.auth import ProfileUpdate, UserRegister
from app.schemas.user import ProfileCounts, UserCreate, UserSnapshot, UserUpdate, SNAPSHOT_VERSION
from app.utils.helpers import generate_username
from app.utils.pagination import paginate


class UserService:
    """Account operations scoped to one database session"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Lookup ====================

    async def get_by_id(self, user_id: str) -> User:
        user = await self.db.get(User, str(user_id))
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_visible_user(self, actor: User, user_id: str) -> User:
        user = await self.get_by_id(user_id)
        authorize(Action.VIEW_USER, actor, user)
        return user

    # ==================== Authentication ====================

    async def authenticate(self, username: str, password: str) -> User:
        """Password check for login. Archived accounts never authenticate."""
        user = await self.get_by_username(username.strip())

        if user is None or not verify_password(password, user.password_hash):
            logger.log_auth_event("login", False, user_email=username, reason="invalid_credentials")
            raise AuthenticationError("Invalid credentials")

        if user.is_archived:
            logger.log_auth_event("login", False, user_email=user.email, reason="archived")
            raise AuthenticationError("Account has been archived")

        return user

    async def record_login(self, user: User) -> None:
        user.last_login = utc_now()
        await self.db.commit()

    # ==================== Listings ====================

    def _apply_filters(self, query, role: Optional[UserRole], search: Optional[str], include_archived: bool):
        if role is not None:
            query = query.where(User.role == role)
        if not include_archived:
            query = query.where(User.is_archived.is_(False))
        if search:
            term = f"%{search.strip()}%"
            query = query.where(
                or_(
                    User.username.ilike(term),
                    User.email.ilike(term),
                    User.first_name.ilike(term),
                    User.last_name.ilike(term),
                )
            )
        return query

    async def list_users(
        self,
        actor: User,
        page: int = 1,
        limit: int = 10,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        include_archived: bool = False,
    ) -> dict:
        """Users visible to `actor`, newest first"""
        authorize(Action.LIST_USERS, actor)

        query = select(User)
        if actor.role == UserRole.TEACHER:
            query = query.where(or_(User.teacher_id == actor.id, User.id == actor.id))
        elif actor.role == UserRole.STUDENT:
            query = query.where(User.id == actor.id)

        query = self._apply_filters(query, role, search, include_archived)
        query = query.order_by(User.created_at.desc())
        return await paginate(self.db, query, page, limit)

    async def list_my_students(
        self,
        actor: User,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        include_archived: bool = False,
    ) -> dict:
        authorize(Action.LIST_MY_STUDENTS, actor, message="Only teachers can view their students")

        query = select(User).where(User.teacher_id == actor.id, User.role == UserRole.STUDENT)
        query = self._apply_filters(query, None, search, include_archived)
        query = query.order_by(User.created_at.desc())
        return await paginate(self.db, query, page, limit)

    async def list_archived(self, actor: User, page: int = 1, limit: int = 10) -> dict:
        authorize(Action.LIST_ARCHIVED_USERS, actor)

        query = select(ArchivedUser)
        if actor.role == UserRole.TEACHER:
            query = query.where(ArchivedUser.teacher_id == actor.id)
        query = query.order_by(ArchivedUser.archived_at.desc())
        return await paginate(self.db, query, page, limit)

    # ==================== Creation ====================

    async def _ensure_unique(self, username: str, email: str) -> None:
        result = await self.db.execute(
            select(User.id).where(or_(User.username == username, User.email == email))
        )
        if result.first() is not None:
            raise ConflictError("User with this username or email already exists")

    async def _resolve_teacher(self, actor: User, role: UserRole, teacher_id: Optional[str]) -> Optional[str]:
        """Owning teacher for a new account (students only)"""
        if role != UserRole.STUDENT:
            return None
        if actor.role == UserRole.TEACHER:
            return actor.id
        if not teacher_id:
            raise ValidationError("Students must be assigned to a teacher", field="teacherId")

        teacher = await self.db.get(User, teacher_id)
        if teacher is None or teacher.role != UserRole.TEACHER or teacher.is_archived:
            raise ValidationError("teacherId must reference an active teacher", field="teacherId")
        return teacher.id

    async def create_user(self, actor: User, data: Union[UserCreate, UserRegister]) -> Tuple[User, Optional[str]]:
        """
        Create an account on behalf of `actor`.

        Returns the user and the generated temporary password (None when
        the caller supplied a password).
        """
        authorize(
            Action.CREATE_USER,
            actor,
            data.role,
            message="Teachers can only create student accounts",
        )

        username = data.username or generate_username(data.email, data.role)
        await self._ensure_unique(username, data.email)

        teacher_id = await self._resolve_teacher(actor, data.role, data.teacher_id)

        temporary_password = None
        password = data.password
        if not password:
            temporary_password = password = generate_temporary_password()

        user = User(
            username=username,
            email=data.email,
            password_hash=get_password_hash(password),
            role=data.role,
            first_name=data.first_name,
            last_name=data.last_name,
            teacher_id=teacher_id,
            is_verified=True,
        )
        self.db.add(user)
        await self.db.commit()

        logger.log_account_event("created", actor_id=actor.id, target_id=user.id, role=user.role.value)
        return user, temporary_password

    # ==================== Updates ====================

    async def _ensure_email_available(self, email: str, user: User) -> None:
        result = await self.db.execute(select(User.id).where(User.email == email, User.id != user.id))
        if result.first() is not None:
            raise ConflictError("Email already in use by another account")

    async def _apply_profile_fields(self, user: User, data: Union[ProfileUpdate, UserUpdate]) -> None:
        if data.email is not None and data.email != user.email:
            await self._ensure_email_available(data.email, user)
            user.email = data.email
        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        await self._apply_profile_fields(user, data)
        await self.db.commit()
        return user

    async def update_user(self, actor: User, user_id: str, data: UserUpdate) -> User:
        user = await self.get_by_id(user_id)
        authorize(Action.UPDATE_USER, actor, user)

        archiving = data.is_archived is True and not user.is_archived
        restoring = data.is_archived is False and user.is_archived

        if archiving or restoring:
            authorize(
                Action.TOGGLE_ARCHIVAL_VIA_UPDATE,
                actor,
                user,
                message="Use the archive endpoint to deactivate accounts",
            )
        # Nothing is written unless the archival change would also be accepted
        if archiving:
            self._check_archivable(actor, user)
        elif restoring:
            self._check_restorable(actor, user)

        await self._apply_profile_fields(user, data)
        await self.db.commit()

        if archiving:
            await self.archive(actor, user.id, reason="Archived through account update")
        elif restoring:
            await self.restore(actor, user.id)

        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            logger.log_auth_event("change_password", False, user_email=user.email, reason="wrong_current_password")
            raise ValidationError("Current password is incorrect", field="currentPassword")

        user.password_hash = get_password_hash(new_password)
        await self.db.commit()
        logger.log_auth_event("change_password", True, user_email=user.email)

    async def reset_password(self, actor: User, user_id: str) -> Tuple[User, str]:
        user = await self.get_by_id(user_id)
        authorize(Action.RESET_PASSWORD, actor, user)

        temporary_password = generate_temporary_password()
        user.password_hash = get_password_hash(temporary_password)
        await self.db.commit()

        logger.log_account_event("password_reset", actor_id=actor.id, target_id=user.id)
        return user, temporary_password

    # ==================== Archive / restore ====================

    def _check_archivable(self, actor: User, user: User) -> None:
        if str(user.id) == str(actor.id):
            raise ValidationError("Cannot archive your own account")

        authorize(
            Action.ARCHIVE_USER,
            actor,
            user,
            message="Teachers can only archive their own students",
        )

        if user.is_archived:
            raise ValidationError("User is already archived")

    def _check_restorable(self, actor: User, user: User) -> None:
        authorize(
            Action.RESTORE_USER,
            actor,
            user,
            message="Teachers can only restore their own students",
        )

        if not user.is_archived:
            raise ValidationError("User is not archived")

    async def archive(self, actor: User, user_id: str, reason: Optional[str] = None) -> ArchivedUser:
        """
        Snapshot the user into archived_users and flag it archived.

        Both writes are committed together or rolled back together.
        """
        user = await self.get_by_id(user_id)
        self._check_archivable(actor, user)

        snapshot = UserSnapshot.model_validate(user)
        archived = ArchivedUser(
            original_user_id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            first_name=user.first_name,
            last_name=user.last_name,
            teacher_id=user.teacher_id,
            snapshot_version=SNAPSHOT_VERSION,
            snapshot=snapshot.model_dump(mode="json"),
            archived_by=actor.id,
            archive_reason=reason,
        )

        try:
            self.db.add(archived)
            user.is_archived = True
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.log_account_event("archived", actor_id=actor.id, target_id=user.id, reason=reason)
        return archived

    async def restore(self, actor: User, user_id: str) -> User:
        """Clear the archival flag and drop the snapshot row"""
        user = await self.get_by_id(user_id)
        self._check_restorable(actor, user)

        try:
            user.is_archived = False
            await self.db.execute(delete(ArchivedUser).where(ArchivedUser.original_user_id == user.id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.log_account_event("restored", actor_id=actor.id, target_id=user.id)
        return user

    # ==================== Profile ====================

    async def profile_counts(self, user: User) -> ProfileCounts:
        created_students = await self.db.scalar(
            select(func.count()).select_from(User).where(User.teacher_id == user.id)
        )
        created_exams = await self.db.scalar(
            select(func.count()).select_from(Exam).where(Exam.teacher_id == user.id)
        )
        scores = await self.db.scalar(
            select(func.count()).select_from(Score).where(Score.student_id == user.id)
        )
        enrolled_exams = await self.db.scalar(
            select(func.count()).select_from(exam_students).where(exam_students.c.student_id == user.id)
        )
        return ProfileCounts(
            created_students=created_students or 0,
            created_exams=created_exams or 0,
            scores=scores or 0,
            enrolled_exams=enrolled_exams or 0,
        )
