from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

MIN_RATING = 1
MAX_RATING = 5


@dataclass(slots=True)
class Rating:
    id: int
    ticket_id: int
    rating: int
    comment: str | None
    created_at: datetime


@dataclass(slots=True)
class RatingStats:
    total_ratings: int
    average_rating: float
    recent_ratings: list[Rating] = field(default_factory=list)
