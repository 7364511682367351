"""Tour models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from natours.models.base import CamelModel


class Tour(CamelModel):
    """A bookable tour."""

    id: UUID
    name: str
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: float = 4.5
    ratings_quantity: int = 0
    price: float
    price_discount: Optional[float] = None
    summary: str
    description: Optional[str] = None
    image_cover: str
    images: list[str] = Field(default_factory=list)
    start_dates: list[datetime] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, exclude=True)


class TourCreate(CamelModel):
    """Request body for creating a tour."""

    name: str = Field(..., min_length=10, max_length=40)
    duration: int = Field(..., gt=0)
    max_group_size: int = Field(..., gt=0)
    difficulty: str
    ratings_average: float = Field(default=4.5, ge=1, le=5)
    ratings_quantity: int = Field(default=0, ge=0)
    price: float = Field(..., ge=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_cover: str
    images: list[str] = Field(default_factory=list)
    start_dates: list[datetime] = Field(default_factory=list)


class TourUpdate(CamelModel):
    """Partial update; only provided fields are written."""

    name: Optional[str] = Field(default=None, min_length=10, max_length=40)
    duration: Optional[int] = Field(default=None, gt=0)
    max_group_size: Optional[int] = Field(default=None, gt=0)
    difficulty: Optional[str] = None
    ratings_average: Optional[float] = Field(default=None, ge=1, le=5)
    ratings_quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    price_discount: Optional[float] = Field(default=None, ge=0)
    summary: Optional[str] = None
    description: Optional[str] = None
    image_cover: Optional[str] = None
    images: Optional[list[str]] = None
    start_dates: Optional[list[datetime]] = None
