"""Services package exports."""

from natours.services.auth_service import (
    AuthService,
    ExpiredTokenError,
    InvalidTokenError,
    TokenClaims,
)
from natours.services.email_service import EmailDeliveryError, EmailService
from natours.services.logging_service import configure_logging, get_logger
from natours.services.session_service import SessionCookie
from natours.services.tour_service import TourService
from natours.services.user_service import UserService

__all__ = [
    "AuthService",
    "EmailDeliveryError",
    "EmailService",
    "ExpiredTokenError",
    "InvalidTokenError",
    "SessionCookie",
    "TokenClaims",
    "TourService",
    "UserService",
    "configure_logging",
    "get_logger",
]
