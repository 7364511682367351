"""User directory backed by Postgres."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from natours.database import get_pool
from natours.errors import ValidationError
from natours.models.user import Role, User
from natours.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

USER_COLUMNS = (
    "id, name, email, photo, role, active, password_changed_at, created_at, updated_at"
)

# Backdated so a token issued in the same second as the change stays valid
PASSWORD_CHANGED_SKEW = timedelta(seconds=1)


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        photo=row["photo"],
        role=Role(row["role"]),
        active=row["active"],
        password_changed_at=row["password_changed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserService:
    """Service for user lookups and writes.

    Inactive (self-deleted) users are invisible to every lookup.
    """

    def __init__(self, auth_service: Optional[AuthService] = None):
        self.auth_service = auth_service or AuthService()

    async def create_user(self, name: str, email: str, password: str) -> User:
        """Create a new user with the default role and a hashed password.

        Raises:
            ValidationError: If the email is already registered
        """
        user_id = uuid4()
        now = datetime.now(timezone.utc)
        password_hash = self.auth_service.hash_password(password)

        pool = await get_pool()

        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO users (id, name, email, role, password_hash, active, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, TRUE, $6, $6)
                    RETURNING {USER_COLUMNS}
                    """,
                    user_id,
                    name,
                    email.lower(),
                    Role.USER.value,
                    password_hash,
                    now,
                )
            except asyncpg.UniqueViolationError:
                raise ValidationError(
                    f"Duplicate field value: {email}. Please use another value!"
                )

        logger.info("user_created", user_id=str(user_id))
        return _row_to_user(row)

    async def get_by_email(self, email: str) -> Optional[tuple[User, str]]:
        """Get an active user by email, including the password hash.

        Returns:
            Tuple of (User, password_hash) or None if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS}, password_hash
                FROM users
                WHERE email = LOWER($1) AND active = TRUE
                """,
                email,
            )

        if row is None:
            return None
        return _row_to_user(row), row["password_hash"]

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1 AND active = TRUE",
                user_id,
            )

        return _row_to_user(row) if row is not None else None

    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        """Explicitly fetch the password hash, which no other read returns."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT password_hash FROM users WHERE id = $1 AND active = TRUE",
                user_id,
            )

    async def get_by_reset_token(self, token_hash: str) -> Optional[User]:
        """Find the user holding an unexpired reset token with this hash."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE password_reset_token = $1
                  AND password_reset_expires > $2
                  AND active = TRUE
                """,
                token_hash,
                datetime.now(timezone.utc),
            )

        return _row_to_user(row) if row is not None else None

    async def set_password_reset(
        self, user_id: UUID, token_hash: str, expires_at: datetime
    ) -> None:
        """Store reset bookkeeping without touching any other field."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE users
                SET password_reset_token = $1, password_reset_expires = $2
                WHERE id = $3
                """,
                token_hash,
                expires_at,
                user_id,
            )

        logger.info(
            "password_reset_token_stored",
            user_id=str(user_id),
            expires_at=expires_at.isoformat(),
        )

    async def clear_password_reset(self, user_id: UUID) -> None:
        pool = await get_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE users
                SET password_reset_token = NULL, password_reset_expires = NULL
                WHERE id = $1
                """,
                user_id,
            )

        logger.info("password_reset_token_cleared", user_id=str(user_id))

    async def update_password(self, user_id: UUID, password: str) -> Optional[User]:
        """Replace the password and bump password_changed_at.

        Tokens issued before this call fail the staleness check afterwards.
        """
        return await self._write_password(user_id, password)

    async def reset_password(
        self, user_id: UUID, token_hash: str, password: str
    ) -> Optional[User]:
        """Replace the password and consume the reset token in one statement.

        The UPDATE only matches while the token is still stored and unexpired,
        so of two concurrent resets with the same token at most one succeeds.

        Returns:
            The updated user, or None if the token was already used or expired
        """
        return await self._write_password(user_id, password, reset_token_hash=token_hash)

    async def _write_password(
        self, user_id: UUID, password: str, reset_token_hash: Optional[str] = None
    ) -> Optional[User]:
        password_hash = self.auth_service.hash_password(password)
        now = datetime.now(timezone.utc)
        params = [password_hash, now - PASSWORD_CHANGED_SKEW, now, user_id]

        set_clause = "password_hash = $1, password_changed_at = $2, updated_at = $3"
        where_clause = "id = $4 AND active = TRUE"
        if reset_token_hash is not None:
            set_clause += ", password_reset_token = NULL, password_reset_expires = NULL"
            where_clause += " AND password_reset_token = $5 AND password_reset_expires > $3"
            params.append(reset_token_hash)

        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE users
                SET {set_clause}
                WHERE {where_clause}
                RETURNING {USER_COLUMNS}
                """,
                *params,
            )

        if row is None:
            return None

        logger.info(
            "user_password_changed",
            user_id=str(user_id),
            via_reset=reset_token_hash is not None,
        )
        return _row_to_user(row)

    async def update_profile(
        self,
        user_id: UUID,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[User]:
        """Update the non-sensitive profile fields that are not None.

        Raises:
            ValidationError: If the new email is already registered
        """
        set_clauses = []
        params = []

        if name is not None:
            params.append(name)
            set_clauses.append(f"name = ${len(params)}")

        if email is not None:
            params.append(email.lower())
            set_clauses.append(f"email = ${len(params)}")

        if not set_clauses:
            return await self.get_by_id(user_id)

        params.append(datetime.now(timezone.utc))
        set_clauses.append(f"updated_at = ${len(params)}")

        params.append(user_id)
        query = f"""
            UPDATE users
            SET {', '.join(set_clauses)}
            WHERE id = ${len(params)} AND active = TRUE
            RETURNING {USER_COLUMNS}
        """

        pool = await get_pool()

        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(query, *params)
            except asyncpg.UniqueViolationError:
                raise ValidationError(
                    f"Duplicate field value: {email}. Please use another value!"
                )

        if row is None:
            return None

        logger.info(
            "user_updated",
            user_id=str(user_id),
            fields_updated=[c.split(" = ")[0] for c in set_clauses if "updated_at" not in c],
        )
        return _row_to_user(row)

    async def deactivate(self, user_id: UUID) -> bool:
        """Soft-delete: the account disappears from every lookup."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET active = FALSE, updated_at = $1 WHERE id = $2 AND active = TRUE",
                datetime.now(timezone.utc),
                user_id,
            )

        deactivated = result == "UPDATE 1"
        if deactivated:
            logger.info("user_deactivated", user_id=str(user_id))
        return deactivated

    async def list_users(self) -> list[User]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE active = TRUE
                ORDER BY created_at ASC
                """
            )

        return [_row_to_user(row) for row in rows]

    async def delete_user(self, user_id: UUID) -> bool:
        """Hard-delete a user.

        Returns:
            True if the user was deleted, False if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM users WHERE id = $1", user_id)

        deleted = result == "DELETE 1"

        if deleted:
            logger.info("user_deleted", user_id=str(user_id))
        else:
            logger.warning("user_delete_not_found", user_id=str(user_id))

        return deleted
