"""User account endpoints: self-service profile and admin management."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import Field, field_validator
import structlog

from natours.api.dependencies import is_logged_in, protect, restrict_to
from natours.errors import NotFoundError, ValidationError
from natours.models.auth import normalize_email
from natours.models.base import CamelModel
from natours.models.user import Role, User
from natours.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])

require_admin = restrict_to(Role.ADMIN)


class UpdateMeRequest(CamelModel):
    """Profile changes a user may make to their own account.

    Password fields are accepted by the schema only so they can be rejected
    with a pointer to /updateMyPassword; role is not accepted at all.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = None
    password_confirm: Optional[str] = None

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v is not None else v


def _user_body(user: Optional[User]) -> dict:
    return {"status": "success", "data": {"user": user}}


@router.get("/me")
async def get_me(current_user: User = Depends(protect)) -> dict:
    return _user_body(current_user)


@router.get("/session")
async def get_session(current_user: Optional[User] = Depends(is_logged_in)) -> dict:
    """Report who is logged in, if anyone. Never fails on a bad session."""
    return _user_body(current_user)


@router.patch("/updateMe")
async def update_me(
    body: UpdateMeRequest,
    current_user: User = Depends(protect),
) -> dict:
    """Update the caller's name and/or email.

    Raises:
        ValidationError: If the body tries to change the password
    """
    if body.password is not None or body.password_confirm is not None:
        raise ValidationError(
            "This route is not for password updates. Please use /updateMyPassword."
        )

    user_service = UserService()
    updated = await user_service.update_profile(
        current_user.id,
        name=body.name,
        email=body.email,
    )
    if updated is None:
        raise NotFoundError("No user found with that ID")

    return _user_body(updated)


@router.delete("/deleteMe", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(current_user: User = Depends(protect)) -> Response:
    """Deactivate the caller's account."""
    user_service = UserService()
    await user_service.deactivate(current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("")
async def list_users(admin: User = Depends(require_admin)) -> dict:
    """List active users (admin only)."""
    users = await UserService().list_users()
    return {"status": "success", "results": len(users), "data": {"users": users}}


@router.get("/{user_id}")
async def get_user(user_id: UUID, admin: User = Depends(require_admin)) -> dict:
    user = await UserService().get_by_id(user_id)
    if user is None:
        raise NotFoundError("No user found with that ID")
    return _user_body(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: UUID, admin: User = Depends(require_admin)) -> Response:
    """Hard-delete a user (admin only)."""
    deleted = await UserService().delete_user(user_id)
    if not deleted:
        raise NotFoundError("No user found with that ID")

    logger.info("admin_deleted_user", admin_id=str(admin.id), target_user_id=str(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
