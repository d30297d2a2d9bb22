"""Post-resolution star ratings, one per ticket."""

from .models import Rating, RatingStats
from .repository import RatingRepository
from .service import AlreadyRatedError, RatingService, TicketNotFinalizedError

__all__ = [
    "AlreadyRatedError",
    "Rating",
    "RatingRepository",
    "RatingService",
    "RatingStats",
    "TicketNotFinalizedError",
]
