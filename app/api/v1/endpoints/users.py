from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_user, get_email_service, get_user_service
from app.schemas.user import ArchivedUserResponse, UserCreate, UserCreatedResponse, UserResponse, UserUpdate
from app.services.email_service import EmailService
from app.services.user_service import UserService
from app.utils.pagination import MAX_PAGE_SIZE
from app.utils.responses import success_response

router = APIRouter()


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    include_archived: bool = Query(False, alias="includeArchived"),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """
    List users visible to the caller.

    Super admins see everyone, teachers see themselves and their students,
    students see only themselves.
    """
    result = await users.list_users(current_user, page, limit, role, search, include_archived)
    return success_response(
        {
            "users": [UserResponse.model_validate(user) for user in result["items"]],
            "pagination": result["pagination"],
        },
        "Users retrieved successfully",
    )


@router.get("/my-students")
async def list_my_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = None,
    include_archived: bool = Query(False, alias="includeArchived"),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    result = await users.list_my_students(current_user, page, limit, search, include_archived)
    return success_response(
        {
            "students": [UserResponse.model_validate(user) for user in result["items"]],
            "pagination": result["pagination"],
        },
        "Students retrieved successfully",
    )


@router.get("/archived")
async def list_archived_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    result = await users.list_archived(current_user, page, limit)
    return success_response(
        {
            "archivedUsers": [ArchivedUserResponse.model_validate(row) for row in result["items"]],
            "pagination": result["pagination"],
        },
        "Archived users retrieved successfully",
    )


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.get_visible_user(current_user, user_id)
    return success_response({"user": UserResponse.model_validate(user)}, "User retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Create an account.

    A username is derived from the email when omitted and a temporary
    password is generated (and returned once) when no password is given.
    """
    user, temporary_password = await users.create_user(current_user, payload)

    await email_service.send_welcome_email(
        user.email,
        user.full_name,
        user.username,
        user.role.value,
        temporary_password=temporary_password,
    )

    created = UserCreatedResponse(
        user=UserResponse.model_validate(user),
        temporary_password=temporary_password,
    )
    return success_response(created, f"{user.role.value.lower()} account created successfully")


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_user(current_user, user_id, payload)
    return success_response({"user": UserResponse.model_validate(user)}, "User updated successfully")


@router.delete("/{user_id}")
async def archive_user(
    user_id: str,
    reason: Optional[str] = Query(None, max_length=500),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Accounts are archived, never hard deleted"""
    archived = await users.archive(current_user, user_id, reason)
    return success_response(
        {"archivedUser": ArchivedUserResponse.model_validate(archived)},
        "User archived successfully",
    )


@router.post("/{user_id}/restore")
async def restore_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.restore(current_user, user_id)
    return success_response({"user": UserResponse.model_validate(user)}, "User restored successfully")


@router.post("/{user_id}/reset-password")
async def reset_password(
    user_id: str,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
    email_service: EmailService = Depends(get_email_service),
):
    user, temporary_password = await users.reset_password(current_user, user_id)

    await email_service.send_password_reset_email(
        user.email,
        user.full_name,
        user.username,
        temporary_password,
    )

    return success_response(
        {"temporaryPassword": temporary_password},
        "Password reset successfully",
    )
