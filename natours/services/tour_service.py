"""Tour catalogue service."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from natours.database import get_pool
from natours.errors import ValidationError
from natours.models.tour import Tour, TourCreate, TourUpdate

logger = structlog.get_logger(__name__)

TOUR_COLUMNS = (
    "id, name, duration, max_group_size, difficulty, ratings_average, "
    "ratings_quantity, price, price_discount, summary, description, "
    "image_cover, images, start_dates, created_at"
)


def _row_to_tour(row) -> Tour:
    return Tour(**dict(row))


def _duplicate_name(name: Optional[str]) -> ValidationError:
    return ValidationError(f"Duplicate field value: {name}. Please use another value!")


class TourService:
    """CRUD over the tours table."""

    async def list_tours(self, page: int = 1, limit: int = 100) -> list[Tour]:
        """Return tours, newest first, one page at a time."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {TOUR_COLUMNS}
                FROM tours
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
                """,
                limit,
                (page - 1) * limit,
            )

        return [_row_to_tour(row) for row in rows]

    async def get_tour(self, tour_id: UUID) -> Optional[Tour]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {TOUR_COLUMNS} FROM tours WHERE id = $1",
                tour_id,
            )

        return _row_to_tour(row) if row is not None else None

    async def create_tour(self, data: TourCreate) -> Tour:
        """Insert a tour.

        Raises:
            ValidationError: If a tour with the same name exists
        """
        fields = data.model_dump()
        fields["id"] = uuid4()
        fields["created_at"] = datetime.now(timezone.utc)
        columns = list(fields)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        pool = await get_pool()

        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO tours ({', '.join(columns)})
                    VALUES ({placeholders})
                    RETURNING {TOUR_COLUMNS}
                    """,
                    *fields.values(),
                )
            except asyncpg.UniqueViolationError:
                raise _duplicate_name(data.name)

        logger.info("tour_created", tour_id=str(fields["id"]), name=data.name)
        return _row_to_tour(row)

    async def update_tour(self, tour_id: UUID, data: TourUpdate) -> Optional[Tour]:
        """Update the fields that were provided.

        Returns:
            The updated tour, or None if it does not exist
        """
        fields = data.model_dump(exclude_unset=True, exclude_none=True)
        if not fields:
            return await self.get_tour(tour_id)

        set_clauses = [f"{column} = ${i}" for i, column in enumerate(fields, start=1)]
        params = list(fields.values())
        params.append(tour_id)

        pool = await get_pool()

        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    UPDATE tours
                    SET {', '.join(set_clauses)}
                    WHERE id = ${len(params)}
                    RETURNING {TOUR_COLUMNS}
                    """,
                    *params,
                )
            except asyncpg.UniqueViolationError:
                raise _duplicate_name(fields.get("name"))

        if row is None:
            return None

        logger.info("tour_updated", tour_id=str(tour_id), fields_updated=list(fields))
        return _row_to_tour(row)

    async def delete_tour(self, tour_id: UUID) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM tours WHERE id = $1", tour_id)

        deleted = result == "DELETE 1"
        if deleted:
            logger.info("tour_deleted", tour_id=str(tour_id))
        return deleted
