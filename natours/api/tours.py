"""Tour catalogue endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
import structlog

from natours.api.dependencies import restrict_to
from natours.errors import NotFoundError
from natours.models.tour import TourCreate, TourUpdate
from natours.models.user import Role, User
from natours.services.tour_service import TourService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/tours", tags=["Tours"])

require_tour_manager = restrict_to(Role.ADMIN, Role.LEAD_GUIDE)

_NOT_FOUND = "No tour found with that ID"


@router.get("")
async def list_tours(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=100),
) -> dict:
    tours = await TourService().list_tours(page=page, limit=limit)
    return {"status": "success", "results": len(tours), "data": {"tours": tours}}


@router.get("/{tour_id}")
async def get_tour(tour_id: UUID) -> dict:
    tour = await TourService().get_tour(tour_id)
    if tour is None:
        raise NotFoundError(_NOT_FOUND)
    return {"status": "success", "data": {"tour": tour}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tour(
    body: TourCreate,
    manager: User = Depends(require_tour_manager),
) -> dict:
    tour = await TourService().create_tour(body)
    logger.info("tour_created_by", user_id=str(manager.id), tour_id=str(tour.id))
    return {"status": "success", "data": {"tour": tour}}


@router.patch("/{tour_id}")
async def update_tour(
    tour_id: UUID,
    body: TourUpdate,
    manager: User = Depends(require_tour_manager),
) -> dict:
    tour = await TourService().update_tour(tour_id, body)
    if tour is None:
        raise NotFoundError(_NOT_FOUND)
    return {"status": "success", "data": {"tour": tour}}


@router.delete("/{tour_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tour(
    tour_id: UUID,
    manager: User = Depends(require_tour_manager),
) -> Response:
    if not await TourService().delete_tour(tour_id):
        raise NotFoundError(_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
