from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from app.core.errors import ConflictError, InputValidationError
from app.tickets.repository import TicketRepository
from app.tickets.service import TicketNotFoundError
from app.tickets.state import TicketStatus

from .models import MAX_RATING, MIN_RATING, Rating, RatingStats
from .repository import DuplicateRatingError, RatingRepository

logger = logging.getLogger(__name__)

RECENT_RATINGS_LIMIT = 5


class AlreadyRatedError(ConflictError):
    """Raised when a ticket already received its rating."""


class TicketNotFinalizedError(ConflictError):
    """Raised when rating a ticket that is not finalized yet."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RatingService:
    """Accept at most one rating per ticket."""

    def __init__(
        self,
        repository: RatingRepository,
        *,
        tickets: TicketRepository,
        require_finalized: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.tickets = tickets
        self._require_finalized = require_finalized
        self._clock = clock

    async def create_rating(self, ticket_id: int, *, rating: int, comment: str | None = None) -> Rating:
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InputValidationError(
                f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}",
                errors=[{"loc": ["rating"], "msg": "out of range", "type": "value_error"}],
            )

        ticket = await self.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        if self._require_finalized and ticket.status is not TicketStatus.FINALIZED:
            raise TicketNotFinalizedError(f"Ticket {ticket.ticket_number} is not finalized")
        if await self.repository.get_rating_by_ticket(ticket_id) is not None:
            raise AlreadyRatedError(f"Ticket {ticket.ticket_number} was already rated")

        cleaned = (comment or "").strip() or None
        try:
            created = await self.repository.create_rating(
                ticket_id=ticket_id,
                rating=rating,
                comment=cleaned,
                created_at=self._clock(),
            )
        except DuplicateRatingError as exc:
            raise AlreadyRatedError(f"Ticket {ticket.ticket_number} was already rated") from exc

        logger.info("Ticket %s rated %d", ticket.ticket_number, rating)
        return created

    async def get_rating_by_ticket(self, ticket_id: int) -> Rating | None:
        return await self.repository.get_rating_by_ticket(ticket_id)

    async def list_ratings(self) -> list[Rating]:
        return await self.repository.list_ratings()

    async def rating_stats(self) -> RatingStats:
        total, average = await self.repository.aggregate()
        recent = await self.repository.list_ratings(limit=RECENT_RATINGS_LIMIT)
        return RatingStats(
            total_ratings=total,
            average_rating=round(average, 1) if average is not None else 0.0,
            recent_ratings=recent,
        )
