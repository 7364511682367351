"""Authentication API endpoints.

Every successful credential exchange ends the same way: a fresh access token
is minted, set as the ``jwt`` cookie and echoed in the body together with
the user (never the password hash).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
import structlog

from natours.api.dependencies import protect
from natours.errors import InternalError, NotFoundError, UnauthorizedError, ValidationError
from natours.models.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
    UserData,
)
from natours.models.user import User
from natours.services.auth_service import AuthService
from natours.services.email_service import EmailDeliveryError, EmailService
from natours.services.session_service import SessionCookie
from natours.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Auth"])

# Same message whether the email is unknown or the password is wrong
_LOGIN_FAIL = "Incorrect email or password"


def _send_token(user: User, response: Response) -> AuthResponse:
    """Mint a token for ``user``, attach it as a cookie and build the body."""
    token = AuthService().create_access_token(user.id)
    SessionCookie().attach(response, token)
    return AuthResponse(token=token, data=UserData(user=user))


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, response: Response) -> AuthResponse:
    """Register a new user with the default role and log them in."""
    user_service = UserService()
    user = await user_service.create_user(
        name=body.name,
        email=body.email,
        password=body.password,
    )

    logger.info("user_signed_up", user_id=str(user.id))
    return _send_token(user, response)


@router.post("/login")
async def login(response: Response, body: Optional[LoginRequest] = None) -> AuthResponse:
    """Exchange email and password for a session.

    Raises:
        ValidationError: If email or password is missing
        UnauthorizedError: If the credentials do not match
    """
    body = body or LoginRequest()
    if not body.email or not body.password:
        raise ValidationError("Please provide email and password!")

    user_service = UserService()
    auth_service = AuthService()

    result = await user_service.get_by_email(body.email)
    if result is None:
        raise UnauthorizedError(_LOGIN_FAIL)

    user, password_hash = result
    if not auth_service.verify_password(body.password, password_hash):
        raise UnauthorizedError(_LOGIN_FAIL)

    logger.info("user_logged_in", user_id=str(user.id))
    return _send_token(user, response)


@router.get("/logout")
async def logout(response: Response) -> dict:
    """Overwrite the session cookie with a short-lived placeholder."""
    SessionCookie().clear(response)
    return {"status": "success"}


@router.post("/forgotPassword")
async def forgot_password(body: ForgotPasswordRequest, request: Request) -> dict:
    """Email a single-use reset link to the account owner.

    Raises:
        NotFoundError: If no user has this email
        InternalError: If the email could not be sent; the reset token is
            discarded so it cannot be used
    """
    user_service = UserService()
    auth_service = AuthService()

    result = await user_service.get_by_email(body.email)
    if result is None:
        raise NotFoundError("There is no user with email address.")
    user, _ = result

    raw_token, token_hash, expires_at = auth_service.create_password_reset_token()
    await user_service.set_password_reset(user.id, token_hash, expires_at)

    reset_url = str(request.url_for("reset_password", token=raw_token))

    try:
        await EmailService().send_password_reset(
            user.email,
            reset_url,
            expires_minutes=auth_service.settings.password_reset_expires_minutes,
        )
    except EmailDeliveryError:
        await user_service.clear_password_reset(user.id)
        logger.error("password_reset_email_failed", user_id=str(user.id))
        raise InternalError("There was an error sending the email. Try again later!")

    logger.info("password_reset_requested", user_id=str(user.id))
    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/resetPassword/{token}", name="reset_password")
async def reset_password(
    token: str, body: ResetPasswordRequest, response: Response
) -> AuthResponse:
    """Set a new password using a reset token, then log the user in.

    Raises:
        ValidationError: If the token is unknown, used or expired
    """
    user_service = UserService()

    token_hash = AuthService.hash_reset_token(token)
    user = await user_service.get_by_reset_token(token_hash)
    if user is None:
        raise ValidationError("Token is invalid or has expired")

    # None here means a concurrent reset consumed the token first
    updated = await user_service.reset_password(user.id, token_hash, body.password)
    if updated is None:
        raise ValidationError("Token is invalid or has expired")

    logger.info("password_reset_completed", user_id=str(updated.id))
    return _send_token(updated, response)


@router.patch("/updateMyPassword")
async def update_my_password(
    body: UpdatePasswordRequest,
    response: Response,
    current_user: User = Depends(protect),
) -> AuthResponse:
    """Change the password of the logged-in user.

    Tokens issued before the change stop working; the caller gets a new one.

    Raises:
        UnauthorizedError: If the current password is wrong
    """
    user_service = UserService()
    auth_service = AuthService()

    password_hash = await user_service.get_password_hash(current_user.id)
    if password_hash is None or not auth_service.verify_password(
        body.password_current, password_hash
    ):
        raise UnauthorizedError("Your current password is wrong.")

    updated = await user_service.update_password(current_user.id, body.password)
    if updated is None:
        raise UnauthorizedError("The user belonging to this token does no longer exist.")

    logger.info("user_password_updated", user_id=str(updated.id))
    return _send_token(updated, response)
