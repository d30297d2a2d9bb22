from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.database import ensure_datetime
from packages.db.models import RatingTable

from .models import Rating


class DuplicateRatingError(RuntimeError):
    """Raised when the ticket already has a rating row."""


class RatingRepository:
    """Data access layer for the `ratings` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_rating(
        self,
        *,
        ticket_id: int,
        rating: int,
        comment: str | None,
        created_at: datetime,
    ) -> Rating:
        row = RatingTable(ticket_id=ticket_id, rating=rating, comment=comment, created_at=created_at)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
        except IntegrityError as exc:
            if await self.get_rating_by_ticket(ticket_id) is not None:
                raise DuplicateRatingError(f"Ticket {ticket_id} already has a rating") from exc
            raise
        return self._table_to_rating(row)

    async def get_rating_by_ticket(self, ticket_id: int) -> Rating | None:
        async with self._session_factory() as session:
            result = await session.execute(select(RatingTable).where(RatingTable.ticket_id == ticket_id).limit(1))
            row = result.scalars().first()
            if row is None:
                return None
            return self._table_to_rating(row)

    async def list_ratings(self, *, limit: int | None = None) -> list[Rating]:
        statement = select(RatingTable).order_by(RatingTable.created_at.desc(), RatingTable.id.desc())
        if limit is not None:
            statement = statement.limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_rating(row) for row in result.scalars().all()]

    async def aggregate(self) -> tuple[int, float | None]:
        """Return the number of ratings and their mean value."""

        statement = select(func.count(RatingTable.id), func.avg(RatingTable.rating))
        async with self._session_factory() as session:
            result = await session.execute(statement)
            total, average = result.one()
        return int(total or 0), float(average) if average is not None else None

    @staticmethod
    def _table_to_rating(row: RatingTable) -> Rating:
        if row.id is None:
            raise RuntimeError("Rating row has no primary key")
        return Rating(
            id=row.id,
            ticket_id=row.ticket_id,
            rating=row.rating,
            comment=row.comment,
            created_at=ensure_datetime(row.created_at),
        )
