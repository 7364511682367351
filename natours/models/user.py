"""User model."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field

from natours.models.base import CamelModel


class Role(str, Enum):
    """Roles a user can hold."""

    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"


class User(CamelModel):
    """A registered user.

    The password hash and reset-token bookkeeping never live on this model;
    they are only read through dedicated UserService queries.
    """

    id: UUID
    name: str
    email: str
    photo: str = "default.jpg"
    role: Role = Role.USER
    active: bool = True
    password_changed_at: Optional[datetime] = Field(default=None, exclude=True)
    created_at: datetime
    updated_at: datetime

    def changed_password_after(self, token_issued_at: int) -> bool:
        """Return True if the password changed after a token was issued.

        Both sides are compared in whole seconds and password writes backdate
        ``password_changed_at`` by one second, so a token issued up to about two
        seconds before a change still counts as fresh.

        Args:
            token_issued_at: The token's ``iat`` claim (seconds since epoch)
        """
        if self.password_changed_at is None:
            return False
        changed_timestamp = int(self.password_changed_at.timestamp())
        return token_issued_at < changed_timestamp
