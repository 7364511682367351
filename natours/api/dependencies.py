"""FastAPI dependencies for authentication and authorization.

``protect`` is the hard gate: it rejects any request without a valid, current
session. ``is_logged_in`` is the soft gate used by pages that merely adapt to
the visitor; it runs the same checks but never rejects. ``restrict_to`` builds
a role check on top of ``protect``.
"""

from typing import Callable, Iterable, Optional

import structlog
from fastapi import Depends, Request

from natours.errors import ForbiddenError, UnauthorizedError
from natours.models.user import Role, User
from natours.services.auth_service import (
    AuthService,
    ExpiredTokenError,
    InvalidTokenError,
)
from natours.services.session_service import SessionCookie
from natours.services.user_service import UserService

logger = structlog.get_logger(__name__)


async def _resolve_session(request: Request) -> User:
    """Walk the session checks in order, raising on the first failure.

    Raises:
        UnauthorizedError: If the token is absent, invalid, expired, belongs
            to a user that no longer exists, or predates a password change
    """
    token = SessionCookie.extract(request)
    if not token:
        raise UnauthorizedError("You are not logged in! Please log in to get access.")

    auth_service = AuthService()
    try:
        claims = auth_service.validate_access_token(token)
    except ExpiredTokenError:
        raise UnauthorizedError("Your token has expired! Please log in again.")
    except InvalidTokenError:
        raise UnauthorizedError("Invalid token. Please log in again!")

    user_service = UserService()
    user = await user_service.get_by_id(claims.user_id)
    if user is None:
        raise UnauthorizedError("The user belonging to this token does no longer exist.")

    if user.changed_password_after(claims.issued_at):
        raise UnauthorizedError("User recently changed password! Please log in again.")

    request.state.user = user
    return user


async def protect(request: Request) -> User:
    """Require an authenticated user.

    Returns:
        The user the session belongs to
    """
    try:
        return await _resolve_session(request)
    except UnauthorizedError as e:
        logger.info("authentication_rejected", path=request.url.path, reason=e.message)
        raise


async def is_logged_in(request: Request) -> Optional[User]:
    """Return the session's user, or None if there is no usable session.

    Malformed, expired and stale tokens are treated exactly like an absent
    one, and so is a failure while looking the user up. This never grants
    access to anything; it only annotates.
    """
    try:
        return await _resolve_session(request)
    except UnauthorizedError:
        pass
    except Exception as e:
        logger.warning(
            "soft_session_check_failed",
            path=request.url.path,
            error=str(e),
            error_type=type(e).__name__,
        )

    request.state.user = None
    return None


def is_role_permitted(role: Role | str, allowed_roles: Iterable[Role | str]) -> bool:
    """Return True if ``role`` is one of ``allowed_roles``."""
    allowed = {Role(r) for r in allowed_roles}
    return Role(role) in allowed


def restrict_to(*roles: Role | str) -> Callable:
    """Build a dependency admitting only users holding one of ``roles``.

    The returned dependency depends on ``protect``, so authentication always
    runs first.
    """
    allowed = tuple(Role(r) for r in roles)

    async def _check_role(current_user: User = Depends(protect)) -> User:
        if not is_role_permitted(current_user.role, allowed):
            logger.warning(
                "authorization_denied",
                user_id=str(current_user.id),
                role=current_user.role.value,
                allowed=[r.value for r in allowed],
            )
            raise ForbiddenError("You do not have permission to perform this action")
        return current_user

    return _check_role
