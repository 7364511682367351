"""Unit tests for the authentication and authorization gates."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import asyncpg
import pytest
from starlette.requests import Request

from natours.api.dependencies import (
    is_logged_in,
    is_role_permitted,
    protect,
    restrict_to,
)
from natours.config import get_settings
from natours.errors import ForbiddenError, UnauthorizedError
from natours.models.user import Role
from natours.services.auth_service import AuthService
from natours.services.session_service import COOKIE_NAME


def _request(headers: dict | None = None) -> Request:
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    return Request(
        {"type": "http", "method": "GET", "path": "/protected", "headers": raw_headers}
    )


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_service():
    with patch("natours.api.dependencies.UserService") as MockUserService:
        yield MockUserService.return_value


# ---------------------------------------------------------------------------
# Hard gate
# ---------------------------------------------------------------------------

class TestProtect:
    @pytest.mark.asyncio
    async def test_valid_bearer_token_attaches_user(self, user_service, make_user):
        user = make_user()
        user_service.get_by_id = AsyncMock(return_value=user)
        request = _request(_bearer(AuthService().create_access_token(user.id)))

        result = await protect(request)

        assert result == user
        assert request.state.user == user
        user_service.get_by_id.assert_awaited_once_with(user.id)

    @pytest.mark.asyncio
    async def test_valid_cookie_token(self, user_service, make_user):
        user = make_user()
        user_service.get_by_id = AsyncMock(return_value=user)
        token = AuthService().create_access_token(user.id)

        result = await protect(_request({"Cookie": f"{COOKIE_NAME}={token}"}))

        assert result == user

    @pytest.mark.asyncio
    async def test_missing_token(self, user_service):
        with pytest.raises(UnauthorizedError) as exc_info:
            await protect(_request())

        assert exc_info.value.status_code == 401
        assert "not logged in" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_token(self, user_service):
        with pytest.raises(UnauthorizedError) as exc_info:
            await protect(_request(_bearer("garbage")))

        assert "Invalid token" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_expired_token(self, user_service):
        issued_at = datetime.now(timezone.utc) - timedelta(days=365)
        token = AuthService().create_access_token(uuid4(), issued_at=issued_at)

        with pytest.raises(UnauthorizedError) as exc_info:
            await protect(_request(_bearer(token)))

        assert "expired" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_user_no_longer_exists(self, user_service):
        user_service.get_by_id = AsyncMock(return_value=None)
        token = AuthService().create_access_token(uuid4())

        with pytest.raises(UnauthorizedError) as exc_info:
            await protect(_request(_bearer(token)))

        assert "no longer exist" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_token_issued_before_password_change(self, user_service, make_user):
        issued_at = datetime.now(timezone.utc) - timedelta(hours=2)
        user = make_user(password_changed_at=datetime.now(timezone.utc) - timedelta(hours=1))
        user_service.get_by_id = AsyncMock(return_value=user)
        token = AuthService().create_access_token(user.id, issued_at=issued_at)

        with pytest.raises(UnauthorizedError) as exc_info:
            await protect(_request(_bearer(token)))

        assert "recently changed password" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_token_issued_after_password_change(self, user_service, make_user):
        user = make_user(password_changed_at=datetime.now(timezone.utc) - timedelta(hours=1))
        user_service.get_by_id = AsyncMock(return_value=user)
        token = AuthService().create_access_token(user.id)

        assert await protect(_request(_bearer(token))) == user


# ---------------------------------------------------------------------------
# Soft gate
# ---------------------------------------------------------------------------

class TestIsLoggedIn:
    @pytest.mark.asyncio
    async def test_returns_user_for_valid_session(self, user_service, make_user):
        user = make_user()
        user_service.get_by_id = AsyncMock(return_value=user)
        request = _request(_bearer(AuthService().create_access_token(user.id)))

        assert await is_logged_in(request) == user
        assert request.state.user == user

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Bearer garbage"},
            {"Cookie": f"{COOKIE_NAME}=not.a.token"},
        ],
    )
    async def test_never_rejects(self, user_service, headers):
        request = _request(headers)

        assert await is_logged_in(request) is None
        assert request.state.user is None

    @pytest.mark.asyncio
    async def test_stale_session_is_anonymous(self, user_service, make_user):
        issued_at = datetime.now(timezone.utc) - timedelta(hours=2)
        user = make_user(password_changed_at=datetime.now(timezone.utc))
        user_service.get_by_id = AsyncMock(return_value=user)
        token = AuthService().create_access_token(user.id, issued_at=issued_at)

        assert await is_logged_in(_request(_bearer(token))) is None

    @pytest.mark.asyncio
    async def test_deleted_user_is_anonymous(self, user_service):
        user_service.get_by_id = AsyncMock(return_value=None)
        token = AuthService().create_access_token(uuid4())

        assert await is_logged_in(_request(_bearer(token))) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            asyncpg.exceptions.ConnectionDoesNotExistError("connection was closed"),
            RuntimeError("Database pool not initialized"),
            OSError("connection refused"),
        ],
    )
    async def test_lookup_failure_is_anonymous(self, user_service, error):
        user_service.get_by_id = AsyncMock(side_effect=error)
        request = _request(_bearer(AuthService().create_access_token(uuid4())))

        assert await is_logged_in(request) is None
        assert request.state.user is None

    @pytest.mark.asyncio
    async def test_missing_secret_is_anonymous(self, user_service):
        token = AuthService().create_access_token(uuid4())
        unsigned = AuthService(get_settings().model_copy(update={"jwt_secret": ""}))

        with patch("natours.api.dependencies.AuthService", return_value=unsigned):
            assert await is_logged_in(_request(_bearer(token))) is None
        user_service.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_protect_still_propagates_lookup_failure(self, user_service):
        user_service.get_by_id = AsyncMock(side_effect=RuntimeError("Database pool not initialized"))
        token = AuthService().create_access_token(uuid4())

        with pytest.raises(RuntimeError):
            await protect(_request(_bearer(token)))


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class TestRoles:
    @pytest.mark.parametrize(
        "role, allowed, expected",
        [
            (Role.ADMIN, [Role.ADMIN], True),
            (Role.USER, [Role.ADMIN], False),
            ("lead-guide", ["admin", "lead-guide"], True),
            (Role.GUIDE, [Role.ADMIN, Role.LEAD_GUIDE], False),
            (Role.USER, [], False),
        ],
    )
    def test_is_role_permitted(self, role, allowed, expected):
        assert is_role_permitted(role, allowed) is expected

    @pytest.mark.asyncio
    async def test_restrict_to_admits_allowed_role(self, make_user):
        check = restrict_to("admin")
        admin = make_user(role=Role.ADMIN)

        assert await check(current_user=admin) == admin

    @pytest.mark.asyncio
    async def test_restrict_to_rejects_other_roles(self, make_user):
        check = restrict_to("admin")

        with pytest.raises(ForbiddenError) as exc_info:
            await check(current_user=make_user(role=Role.USER))

        assert exc_info.value.status_code == 403

    def test_unknown_role_is_rejected_at_build_time(self):
        with pytest.raises(ValueError):
            restrict_to("superuser")
