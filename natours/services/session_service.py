"""Carrying the access token to and from the client.

The token travels either in an ``Authorization: Bearer`` header or in the
``jwt`` cookie. Logging out does not touch server state: the cookie is simply
overwritten by a short-lived placeholder.
"""

from datetime import timedelta
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from natours.config import Settings, get_settings

COOKIE_NAME = "jwt"
LOGGED_OUT_SENTINEL = "loggedout"
LOGOUT_COOKIE_TTL = timedelta(seconds=10)


class SessionCookie:
    """Attach, clear and extract the session token."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def attach(self, response: Response, token: str) -> None:
        max_age = int(timedelta(days=self.settings.jwt_cookie_expires_in).total_seconds())
        response.set_cookie(
            COOKIE_NAME,
            token,
            max_age=max_age,
            expires=max_age,
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite="lax",
        )

    def clear(self, response: Response) -> None:
        ttl = int(LOGOUT_COOKIE_TTL.total_seconds())
        response.set_cookie(
            COOKIE_NAME,
            LOGGED_OUT_SENTINEL,
            max_age=ttl,
            expires=ttl,
            httponly=True,
            secure=self.settings.cookie_secure,
            samesite="lax",
        )

    @staticmethod
    def extract(request: Request) -> Optional[str]:
        """Return the token from the Authorization header, else the cookie."""
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

        cookie = request.cookies.get(COOKIE_NAME)
        if cookie and cookie != LOGGED_OUT_SENTINEL:
            return cookie

        return None
