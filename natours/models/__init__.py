"""Models package exports."""

from natours.models.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
)
from natours.models.tour import Tour, TourCreate, TourUpdate
from natours.models.user import Role, User

__all__ = [
    "AuthResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "ResetPasswordRequest",
    "Role",
    "SignupRequest",
    "Tour",
    "TourCreate",
    "TourUpdate",
    "UpdatePasswordRequest",
    "User",
]
