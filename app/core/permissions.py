"""
Role-based access policy.

Every action maps to one predicate in POLICY. A predicate only looks at the
acting user's role and id and at the target's id / owner id, so the table
can be exercised without a database or an HTTP request.

Usage:
    from app.core.permissions import Action, authorize

    authorize(Action.UPDATE_USER, current_user, target_user)
    authorize(Action.CREATE_USER, current_user, UserRole.STUDENT)
"""
import enum
from typing import Any, Callable, Dict, Optional

from app.core.exceptions import AuthorizationError
from app.core.logging_config import logger
from app.models.user import UserRole


class Action(str, enum.Enum):
    LIST_USERS = "list_users"
    LIST_MY_STUDENTS = "list_my_students"
    LIST_ARCHIVED_USERS = "list_archived_users"
    VIEW_USER = "view_user"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    TOGGLE_ARCHIVAL_VIA_UPDATE = "toggle_archival_via_update"
    ARCHIVE_USER = "archive_user"
    RESTORE_USER = "restore_user"
    RESET_PASSWORD = "reset_password"
    CREATE_EXAM = "create_exam"
    VIEW_EXAM = "view_exam"
    MANAGE_EXAM = "manage_exam"
    JOIN_EXAM = "join_exam"


Predicate = Callable[[Any, Any], bool]


def _is_admin(actor) -> bool:
    return actor.role == UserRole.SUPER_ADMIN


def _is_self(actor, target) -> bool:
    return target is not None and str(target.id) == str(actor.id)


def _owns_student(actor, target) -> bool:
    """Teacher owns the target account"""
    return (
        actor.role == UserRole.TEACHER
        and target is not None
        and target.teacher_id is not None
        and str(target.teacher_id) == str(actor.id)
    )


def _authored_exam(actor, exam) -> bool:
    return actor.role == UserRole.TEACHER and exam is not None and str(exam.teacher_id) == str(actor.id)


def _any_role(actor, target) -> bool:
    return True


def _role_is(*roles: UserRole) -> Predicate:
    def predicate(actor, target) -> bool:
        return actor.role in roles
    return predicate


def _view_or_update_user(actor, target) -> bool:
    return _is_admin(actor) or _is_self(actor, target) or _owns_student(actor, target)


def _manage_student_account(actor, target) -> bool:
    return _is_admin(actor) or _owns_student(actor, target)


def _create_user(actor, role: Optional[UserRole]) -> bool:
    if _is_admin(actor):
        return True
    return actor.role == UserRole.TEACHER and role == UserRole.STUDENT


def _view_exam(actor, exam) -> bool:
    """Students need an `is_enrolled` flag set on the target"""
    if _is_admin(actor) or _authored_exam(actor, exam):
        return True
    return actor.role == UserRole.STUDENT and bool(getattr(exam, "is_enrolled", False))


def _manage_exam(actor, exam) -> bool:
    return _is_admin(actor) or _authored_exam(actor, exam)


POLICY: Dict[Action, Predicate] = {
    Action.LIST_USERS: _any_role,
    Action.LIST_MY_STUDENTS: _role_is(UserRole.TEACHER),
    Action.LIST_ARCHIVED_USERS: _role_is(UserRole.SUPER_ADMIN, UserRole.TEACHER),
    Action.VIEW_USER: _view_or_update_user,
    Action.CREATE_USER: _create_user,
    Action.UPDATE_USER: _view_or_update_user,
    Action.TOGGLE_ARCHIVAL_VIA_UPDATE: _role_is(UserRole.SUPER_ADMIN),
    Action.ARCHIVE_USER: _manage_student_account,
    Action.RESTORE_USER: _manage_student_account,
    Action.RESET_PASSWORD: _manage_student_account,
    Action.CREATE_EXAM: _role_is(UserRole.TEACHER),
    Action.VIEW_EXAM: _view_exam,
    Action.MANAGE_EXAM: _manage_exam,
    Action.JOIN_EXAM: _role_is(UserRole.STUDENT),
}


def is_allowed(action: Action, actor, target: Any = None) -> bool:
    if actor is None:
        return False
    return POLICY[action](actor, target)


def authorize(action: Action, actor, target: Any = None, message: str = "Insufficient permissions") -> None:
    """Raise AuthorizationError (403) unless the policy allows the action"""
    if not is_allowed(action, actor, target):
        logger.log_security_event(
            "permission_denied",
            action=action.value,
            actor_id=str(getattr(actor, "id", "")),
            actor_role=str(getattr(getattr(actor, "role", None), "value", "")),
        )
        raise AuthorizationError(message)
