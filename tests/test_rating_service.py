from __future__ import annotations

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.errors import ConflictError, InputValidationError
from app.ratings.repository import DuplicateRatingError, RatingRepository
from app.ratings.service import AlreadyRatedError, RatingService, TicketNotFinalizedError
from app.tickets.service import TicketNotFoundError, TicketService
from app.tickets.state import TicketStatus


@pytest_asyncio.fixture
async def finalized_ticket(ticket_service: TicketService, submission_payload):
    ticket = await ticket_service.create_ticket(submission_payload)
    return await ticket_service.change_status(ticket.id, new_status=TicketStatus.FINALIZED, actor="Carlos")


@pytest.mark.asyncio
async def test_first_rating_is_accepted(rating_service: RatingService, finalized_ticket):
    rating = await rating_service.create_rating(finalized_ticket.id, rating=5, comment="  Ótimo atendimento ")

    assert rating.rating == 5
    assert rating.comment == "Ótimo atendimento"
    stored = await rating_service.get_rating_by_ticket(finalized_ticket.id)
    assert stored == rating


@pytest.mark.asyncio
async def test_second_rating_is_rejected(rating_service: RatingService, finalized_ticket):
    await rating_service.create_rating(finalized_ticket.id, rating=4)

    with pytest.raises(AlreadyRatedError) as exc:
        await rating_service.create_rating(finalized_ticket.id, rating=1, comment="mudei de ideia")

    assert isinstance(exc.value, ConflictError)
    stored = await rating_service.get_rating_by_ticket(finalized_ticket.id)
    assert stored is not None
    assert stored.rating == 4
    assert stored.comment is None


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [0, 6, -1, True])
async def test_rating_out_of_range_is_rejected(rating_service: RatingService, finalized_ticket, value):
    with pytest.raises(InputValidationError):
        await rating_service.create_rating(finalized_ticket.id, rating=value)

    assert await rating_service.get_rating_by_ticket(finalized_ticket.id) is None


@pytest.mark.asyncio
async def test_rating_unknown_ticket(rating_service: RatingService):
    with pytest.raises(TicketNotFoundError):
        await rating_service.create_rating(999, rating=5)


@pytest.mark.asyncio
async def test_rating_requires_finalized_ticket(rating_service: RatingService, ticket_service: TicketService, submission_payload):
    ticket = await ticket_service.create_ticket(submission_payload)

    with pytest.raises(TicketNotFinalizedError):
        await rating_service.create_rating(ticket.id, rating=5)


@pytest.mark.asyncio
async def test_finalized_requirement_can_be_disabled(
    session_factory: async_sessionmaker, ticket_repository, ticket_service: TicketService, submission_payload
):
    service = RatingService(RatingRepository(session_factory), tickets=ticket_repository, require_finalized=False)
    ticket = await ticket_service.create_ticket(submission_payload)

    rating = await service.create_rating(ticket.id, rating=3)

    assert rating.ticket_id == ticket.id


@pytest.mark.asyncio
async def test_unique_constraint_surfaces_as_duplicate(session_factory: async_sessionmaker, finalized_ticket, clock):
    repository = RatingRepository(session_factory)
    await repository.create_rating(ticket_id=finalized_ticket.id, rating=5, comment=None, created_at=clock.now)

    with pytest.raises(DuplicateRatingError):
        await repository.create_rating(ticket_id=finalized_ticket.id, rating=2, comment=None, created_at=clock.now)


@pytest.mark.asyncio
async def test_rating_stats(rating_service: RatingService, ticket_service: TicketService, submission_payload, clock):
    scores = [5, 4, 4, 3, 5, 2]
    for score in scores:
        ticket = await ticket_service.create_ticket(submission_payload)
        await ticket_service.change_status(ticket.id, new_status=TicketStatus.FINALIZED, actor="Carlos")
        await rating_service.create_rating(ticket.id, rating=score)
        clock.advance(minutes=1)

    stats = await rating_service.rating_stats()

    assert stats.total_ratings == 6
    assert stats.average_rating == pytest.approx(3.8)
    assert [rating.rating for rating in stats.recent_ratings] == [2, 5, 3, 4, 4]

    listed = await rating_service.list_ratings()
    assert [rating.rating for rating in listed] == list(reversed(scores))
    assert listed[0].created_at - listed[-1].created_at == timedelta(minutes=5)


@pytest.mark.asyncio
async def test_rating_stats_without_ratings(rating_service: RatingService):
    stats = await rating_service.rating_stats()

    assert stats.total_ratings == 0
    assert stats.average_rating == 0.0
    assert stats.recent_ratings == []
