"""API package exports."""

from natours.api.auth import router as auth_router
from natours.api.middleware import CorrelationIdMiddleware
from natours.api.tours import router as tours_router
from natours.api.users import router as users_router

__all__ = ["auth_router", "tours_router", "users_router", "CorrelationIdMiddleware"]
