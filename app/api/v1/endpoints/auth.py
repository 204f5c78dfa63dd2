from fastapi import APIRouter, Depends, Request, status

from app.core.exceptions import AuthenticationError, OTPError
from app.core.logging_config import logger
from app.core.rate_limiter import auth_rate_limit
from app.core.security import TokenService
from app.models.user import User, UserRole
from app.modules.auth.dependencies import (
    get_current_user,
    get_email_service,
    get_otp_service,
    get_token_service,
    get_user_service,
)
from app.schemas.auth import (
    ChangePasswordRequest,
    LoginResponse,
    OTPChallengeResponse,
    OTPRequest,
    OTPVerifyRequest,
    ProfileUpdate,
    TokenResponse,
    UserLogin,
    UserRegister,
)
from app.schemas.user import ProfileResponse, UserResponse
from app.services.email_service import EmailService
from app.services.otp_service import OTPService
from app.services.user_service import UserService
from app.utils.helpers import mask_email
from app.utils.responses import success_response

router = APIRouter()

OTP_REQUEST_MESSAGE = "If the email exists, an OTP will be sent."


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/login")
@auth_rate_limit()
async def login(
    request: Request,
    credentials: UserLogin,
    users: UserService = Depends(get_user_service),
    otp: OTPService = Depends(get_otp_service),
    token_service: TokenService = Depends(get_token_service),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Password login.

    Teachers get an OTP challenge instead of a token and finish the login
    with /auth/verify-otp. Every other role receives a token directly.
    """
    user = await users.authenticate(credentials.username, credentials.password)

    if user.role == UserRole.TEACHER:
        code = await otp.issue(user)
        await email_service.send_otp_email(user.email, code, user.full_name)

        logger.log_auth_event("login_otp_issued", True, user_email=user.email, client_ip=_client_ip(request))
        challenge = OTPChallengeResponse(
            user_id=user.id,
            email=user.email,
            masked_email=mask_email(user.email),
        )
        return success_response(challenge, "OTP sent to your email. Please verify to complete login.")

    await users.record_login(user)
    logger.log_auth_event(
        "login", True, user_email=user.email, client_ip=_client_ip(request), user_role=user.role.value
    )

    return success_response(
        LoginResponse(token=token_service.issue(user), user=UserResponse.model_validate(user)),
        "Login successful",
    )


@router.post("/verify-otp")
@auth_rate_limit()
async def verify_otp(
    request: Request,
    payload: OTPVerifyRequest,
    otp: OTPService = Depends(get_otp_service),
    token_service: TokenService = Depends(get_token_service),
):
    """Complete a teacher login with the emailed code"""
    try:
        user = await otp.verify(payload.email, payload.otp_code)
    except (OTPError, AuthenticationError) as exc:
        logger.log_auth_event("verify_otp", False, user_email=payload.email, reason=exc.code)
        raise

    logger.log_auth_event("verify_otp", True, user_email=user.email, client_ip=_client_ip(request))

    return success_response(
        LoginResponse(token=token_service.issue(user), user=UserResponse.model_validate(user)),
        "OTP verified successfully. Login complete.",
    )


@router.post("/request-otp")
@auth_rate_limit()
async def request_otp(
    request: Request,
    payload: OTPRequest,
    users: UserService = Depends(get_user_service),
    otp: OTPService = Depends(get_otp_service),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Send a fresh login code.

    The response never reveals whether the email belongs to an account.
    """
    user = await users.get_by_email(payload.email)

    if user is not None and not user.is_archived:
        code = await otp.issue(user)
        await email_service.send_otp_email(user.email, code, user.full_name)
        logger.log_auth_event("request_otp", True, user_email=user.email, client_ip=_client_ip(request))
    else:
        logger.log_auth_event("request_otp", False, user_email=payload.email, reason="unknown_or_archived")

    return success_response(message=OTP_REQUEST_MESSAGE)


@router.post("/register", status_code=status.HTTP_201_CREATED)
@auth_rate_limit()
async def register(
    request: Request,
    payload: UserRegister,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
    email_service: EmailService = Depends(get_email_service),
):
    """Register an account with an explicit username and password"""
    user, _ = await users.create_user(current_user, payload)

    await email_service.send_welcome_email(
        user.email,
        user.full_name,
        user.username,
        user.role.value,
    )

    return success_response(
        {"user": UserResponse.model_validate(user)},
        "User registered successfully",
    )


@router.get("/profile")
@auth_rate_limit()
async def get_profile(
    request: Request,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    counts = await users.profile_counts(current_user)
    profile = ProfileResponse(**UserResponse.model_validate(current_user).model_dump(), counts=counts)
    return success_response({"user": profile}, "Profile retrieved successfully")


@router.put("/profile")
@auth_rate_limit()
async def update_profile(
    request: Request,
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_profile(current_user, payload)
    return success_response({"user": UserResponse.model_validate(user)}, "Profile updated successfully")


@router.post("/change-password")
@auth_rate_limit()
async def change_password(
    request: Request,
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    await users.change_password(current_user, payload.current_password, payload.new_password)
    return success_response(message="Password changed successfully")


@router.post("/logout")
@auth_rate_limit()
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
):
    """Tokens are not revoked server side; the client discards its copy"""
    logger.log_auth_event("logout", True, user_email=current_user.email, client_ip=_client_ip(request))
    return success_response(message="Logged out successfully")


@router.post("/refresh-token")
@auth_rate_limit()
async def refresh_token(
    request: Request,
    current_user: User = Depends(get_current_user),
    token_service: TokenService = Depends(get_token_service),
):
    token = token_service.issue(current_user)
    logger.log_auth_event("refresh_token", True, user_email=current_user.email)
    return success_response(TokenResponse(token=token), "Token refreshed successfully")
