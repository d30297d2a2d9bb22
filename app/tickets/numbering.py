"""Daily sequential ticket numbers of the form ``YYYYMMDD-NNNN``."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Callable, Protocol

TICKET_NUMBER_PATTERN = re.compile(r"^(?P<date>\d{8})-(?P<sequence>\d{4,})$")


class LatestNumberLookup(Protocol):
    async def latest_ticket_number(self, prefix: str) -> str | None:
        ...


def date_prefix(day: date) -> str:
    return day.strftime("%Y%m%d")


def format_ticket_number(day: date, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("sequence must be positive")
    return f"{date_prefix(day)}-{sequence:04d}"


def parse_sequence(ticket_number: str) -> int:
    match = TICKET_NUMBER_PATTERN.match(ticket_number)
    if match is None:
        raise ValueError(f"Malformed ticket number: {ticket_number!r}")
    return int(match.group("sequence"))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketNumberGenerator:
    """Propose the next ticket number for the current UTC date.

    The proposal is only a candidate: two concurrent callers can compute the
    same value, so the insert relies on the unique constraint on
    ``tickets.ticket_number`` and the caller asks again on conflict.
    """

    def __init__(
        self,
        lookup: LatestNumberLookup,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._lookup = lookup
        self._clock = clock

    def today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    async def next_number(self) -> str:
        day = self.today()
        latest = await self._lookup.latest_ticket_number(date_prefix(day))
        sequence = 1 if latest is None else parse_sequence(latest) + 1
        return format_ticket_number(day, sequence)

