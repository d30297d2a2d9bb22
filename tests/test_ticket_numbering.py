from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.tickets.numbering import TicketNumberGenerator, date_prefix, format_ticket_number, parse_sequence


def _generator(latest: str | None, now: datetime) -> tuple[TicketNumberGenerator, AsyncMock]:
    lookup = AsyncMock()
    lookup.latest_ticket_number = AsyncMock(return_value=latest)
    return TicketNumberGenerator(lookup, clock=lambda: now), lookup


def test_format_ticket_number_pads_sequence():
    assert format_ticket_number(date(2024, 3, 15), 1) == "20240315-0001"
    assert format_ticket_number(date(2024, 3, 15), 12345) == "20240315-12345"
    with pytest.raises(ValueError):
        format_ticket_number(date(2024, 3, 15), 0)


def test_parse_sequence_rejects_malformed_numbers():
    assert parse_sequence("20240315-0042") == 42
    with pytest.raises(ValueError):
        parse_sequence("2024-03-15-1")


@pytest.mark.asyncio
async def test_first_ticket_of_the_day_starts_at_one():
    generator, lookup = _generator(None, datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))

    assert await generator.next_number() == "20240315-0001"
    lookup.latest_ticket_number.assert_awaited_once_with("20240315")


@pytest.mark.asyncio
async def test_next_number_increments_latest_sequence():
    generator, _ = _generator("20240315-0007", datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))

    assert await generator.next_number() == "20240315-0008"


@pytest.mark.asyncio
async def test_next_number_grows_past_four_digits():
    generator, _ = _generator("20240315-9999", datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))

    assert await generator.next_number() == "20240315-10000"


@pytest.mark.asyncio
async def test_day_is_taken_from_utc_time():
    local = timezone(timedelta(hours=-3))
    generator, lookup = _generator(None, datetime(2024, 3, 15, 22, 30, tzinfo=local))

    assert await generator.next_number() == "20240316-0001"
    lookup.latest_ticket_number.assert_awaited_once_with(date_prefix(date(2024, 3, 16)))
