"""Authentication service for password hashing, JWT tokens and reset tokens."""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
import jwt
import structlog

from natours.config import Settings, get_settings

logger = structlog.get_logger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
RESET_TOKEN_BYTES = 32


class InvalidTokenError(ValueError):
    """The token is malformed or its signature does not match."""


class ExpiredTokenError(InvalidTokenError):
    """The token was valid but is past its expiry."""


@dataclass(frozen=True)
class TokenClaims:
    """The parts of a verified access token the application relies on."""

    user_id: UUID
    issued_at: int


class AuthService:
    """Service for credential hashing, access tokens and password-reset tokens."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string (salt embedded)
        """
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against

        Returns:
            True if the password matches, False otherwise (including when
            the stored hash is not a valid bcrypt string)
        """
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError:
            logger.warning("password_hash_malformed")
            return False

    def _signing_secret(self) -> str:
        if not self.settings.jwt_secret:
            raise RuntimeError("JWT_SECRET is not configured")
        return self.settings.jwt_secret

    def create_access_token(
        self, user_id: UUID, issued_at: Optional[datetime] = None
    ) -> str:
        """Create a signed JWT access token.

        Args:
            user_id: User UUID (placed in the 'sub' claim)
            issued_at: Issue time; defaults to now

        Returns:
            Encoded JWT string

        Raises:
            RuntimeError: If no signing secret is configured
        """
        now = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + self.settings.jwt_expires_in,
        }
        token = jwt.encode(payload, self._signing_secret(), algorithm=JWT_ALGORITHM)
        logger.debug(
            "access_token_created",
            user_id=str(user_id),
            expires_in_seconds=int(self.settings.jwt_expires_in.total_seconds()),
        )
        return token

    def validate_access_token(self, token: str) -> TokenClaims:
        """Decode and validate a JWT access token.

        Args:
            token: Encoded JWT string

        Returns:
            TokenClaims with the user id and issue timestamp

        Raises:
            ExpiredTokenError: If the token is past its expiry
            InvalidTokenError: If the token is malformed, tampered with, or
                lacks a usable subject
        """
        try:
            payload = jwt.decode(
                token,
                self._signing_secret(),
                algorithms=[JWT_ALGORITHM],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError("Access token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid access token: {e}")

        try:
            user_id = UUID(payload["sub"])
        except (TypeError, ValueError):
            raise InvalidTokenError("Invalid token payload")

        return TokenClaims(user_id=user_id, issued_at=int(payload["iat"]))

    @staticmethod
    def hash_reset_token(raw_token: str) -> str:
        """Return the sha256 hex digest stored in place of a raw reset token."""
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()

    def create_password_reset_token(self) -> tuple[str, str, datetime]:
        """Generate a random password-reset token.

        Returns:
            Tuple of (raw_token, token_hash, expires_at). Only the hash and
            expiry may be persisted; the raw token goes to the user once.
        """
        raw_token = secrets.token_hex(RESET_TOKEN_BYTES)
        token_hash = self.hash_reset_token(raw_token)
        expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=self.settings.password_reset_expires_minutes
        )
        return raw_token, token_hash, expires_at
