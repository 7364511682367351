"""Auth request and response models with validation."""

from typing import Optional

from pydantic import Field, field_validator, model_validator

from natours.models.base import CamelModel
from natours.models.user import User

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _check_password(v: str) -> str:
    if not v.strip():
        raise ValueError("Password cannot be empty or whitespace only")
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


def normalize_email(v: str) -> str:
    """Lowercase and sanity-check an email address."""
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("Please provide a valid email")
    return v


class PasswordConfirmMixin(CamelModel):
    """A new password together with its confirmation."""

    password: str = Field(..., min_length=8)
    password_confirm: str

    @field_validator("password")
    @classmethod
    def password_valid(cls, v: str) -> str:
        return _check_password(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordConfirmMixin":
        """Ensure passwordConfirm repeats password."""
        if self.password != self.password_confirm:
            raise ValueError("Passwords are not the same!")
        return self


class SignupRequest(PasswordConfirmMixin):
    """Self-service registration.

    Only these fields are accepted; anything else in the body (notably
    ``role``) is ignored so nobody can sign up as an admin.

    Attributes:
        name: Display name
        email: Login email (stored lowercased)
        password: New password (min 8 chars)
        password_confirm: Must equal password
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)


class LoginRequest(CamelModel):
    """Login credentials.

    Both fields are optional at the schema level so that a missing field is
    reported with the login-specific message rather than a generic one.
    """

    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: str


class ResetPasswordRequest(PasswordConfirmMixin):
    pass


class UpdatePasswordRequest(PasswordConfirmMixin):
    """Password change for an already authenticated user.

    Attributes:
        password_current: The password being replaced
    """

    password_current: str


class UserData(CamelModel):
    user: User


class AuthResponse(CamelModel):
    """Successful authentication: token in body and in the ``jwt`` cookie."""

    status: str = "success"
    token: str
    data: UserData
