from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from app.tickets.models import HistoryAction, NewHistoryEntry, TicketSearchFilters
from app.tickets.repository import DuplicateTicketNumberError, TicketRepository
from app.tickets.state import ProblemType, TicketStatus, Urgency
from packages.db.models import RatingTable, TicketHistoryTable

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


async def _create(
    repository: TicketRepository,
    ticket_number: str,
    *,
    requester_name: str = "Maria Souza",
    location: str = "Bloco B",
    problem_type: ProblemType = ProblemType.ELECTRICAL,
    urgency: Urgency = Urgency.HIGH,
    description: str = "Tomada sem energia",
    created_at: datetime = NOW,
):
    return await repository.create_ticket(
        ticket_number=ticket_number,
        requester_name=requester_name,
        requester_email="maria.souza@sesc.org.br",
        location=location,
        problem_type=problem_type,
        description=description,
        urgency=urgency,
        status=TicketStatus.OPEN,
        image_url=None,
        image_key=None,
        history=NewHistoryEntry(
            action=HistoryAction.CREATED,
            description="Chamado criado",
            performed_by=requester_name,
            created_at=created_at,
        ),
    )


@pytest.mark.asyncio
async def test_ensure_schema_creates_tables(engine: AsyncEngine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    repository = TicketRepository(factory, engine=engine)

    await repository.ensure_schema()

    async with engine.begin() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(sa_inspect(sync_conn).get_table_names()))

    assert {"tickets", "technicians", "ratings", "ticket_history", "settings"} <= tables


@pytest.mark.asyncio
async def test_ensure_schema_requires_engine(session_factory: async_sessionmaker):
    repository = TicketRepository(session_factory)

    with pytest.raises(RuntimeError):
        await repository.ensure_schema()


@pytest.mark.asyncio
async def test_create_ticket_persists_ticket_and_history(ticket_repository: TicketRepository):
    ticket = await _create(ticket_repository, "20240315-0001")

    stored = await ticket_repository.get_ticket(ticket.id)
    assert stored is not None
    assert stored.ticket_number == "20240315-0001"
    assert stored.status is TicketStatus.OPEN
    assert stored.problem_type is ProblemType.ELECTRICAL
    assert stored.created_at == NOW

    history = await ticket_repository.get_history(ticket.id)
    assert [entry.action for entry in history] == ["created"]
    assert history[0].performed_by == "Maria Souza"


@pytest.mark.asyncio
async def test_create_ticket_rejects_duplicate_number(ticket_repository: TicketRepository):
    await _create(ticket_repository, "20240315-0001")

    with pytest.raises(DuplicateTicketNumberError) as exc:
        await _create(ticket_repository, "20240315-0001")

    assert exc.value.ticket_number == "20240315-0001"
    assert len(await ticket_repository.list_tickets()) == 1


@pytest.mark.asyncio
async def test_latest_ticket_number_orders_by_length_then_value(ticket_repository: TicketRepository):
    await _create(ticket_repository, "20240315-9999")
    await _create(ticket_repository, "20240315-10000")
    await _create(ticket_repository, "20240316-0001")

    assert await ticket_repository.latest_ticket_number("20240315") == "20240315-10000"
    assert await ticket_repository.latest_ticket_number("20240316") == "20240316-0001"
    assert await ticket_repository.latest_ticket_number("20240317") is None


@pytest.mark.asyncio
async def test_list_tickets_returns_newest_first(ticket_repository: TicketRepository):
    await _create(ticket_repository, "20240315-0001", created_at=NOW)
    await _create(ticket_repository, "20240315-0002", created_at=NOW + timedelta(minutes=5))

    tickets = await ticket_repository.list_tickets()

    assert [ticket.ticket_number for ticket in tickets] == ["20240315-0002", "20240315-0001"]


@pytest.mark.asyncio
async def test_search_tickets_combines_filters(ticket_repository: TicketRepository):
    await _create(ticket_repository, "20240315-0001", location="Bloco B", description="Tomada queimada")
    await _create(
        ticket_repository,
        "20240315-0002",
        location="Piscina",
        problem_type=ProblemType.PLUMBING,
        urgency=Urgency.LOW,
        description="Vazamento no chuveiro",
    )
    await _create(ticket_repository, "20240315-0003", requester_name="Joao Lima", location="bloco c")

    by_location = await ticket_repository.search_tickets(TicketSearchFilters(location="BLOCO"))
    assert {ticket.ticket_number for ticket in by_location} == {"20240315-0001", "20240315-0003"}

    by_type = await ticket_repository.search_tickets(TicketSearchFilters(problem_type=ProblemType.PLUMBING))
    assert [ticket.ticket_number for ticket in by_type] == ["20240315-0002"]

    by_text = await ticket_repository.search_tickets(TicketSearchFilters(search="joao"))
    assert [ticket.ticket_number for ticket in by_text] == ["20240315-0003"]

    by_number = await ticket_repository.search_tickets(TicketSearchFilters(search="0002", urgency=Urgency.LOW))
    assert [ticket.ticket_number for ticket in by_number] == ["20240315-0002"]

    nothing = await ticket_repository.search_tickets(TicketSearchFilters(search="100%"))
    assert nothing == []


@pytest.mark.asyncio
async def test_update_ticket_writes_history_in_same_call(ticket_repository: TicketRepository):
    ticket = await _create(ticket_repository, "20240315-0001")
    later = NOW + timedelta(hours=1)

    updated = await ticket_repository.update_ticket(
        ticket.id,
        {"status": TicketStatus.FINALIZED, "completed_at": later},
        history=NewHistoryEntry(
            action=HistoryAction.STATUS_CHANGED,
            description="Status alterado para: Finalizado",
            performed_by="Equipe",
            created_at=later,
        ),
    )

    assert updated is not None
    assert updated.status is TicketStatus.FINALIZED
    assert updated.completed_at == later
    assert updated.updated_at == later
    history = await ticket_repository.get_history(ticket.id)
    assert [entry.action for entry in history] == ["status_changed", "created"]


@pytest.mark.asyncio
async def test_update_ticket_rejects_immutable_fields(ticket_repository: TicketRepository):
    ticket = await _create(ticket_repository, "20240315-0001")

    with pytest.raises(ValueError):
        await ticket_repository.update_ticket(
            ticket.id,
            {"ticket_number": "20240315-0099"},
            history=NewHistoryEntry(HistoryAction.NOTE_ADDED, "x", None, NOW),
        )


@pytest.mark.asyncio
async def test_update_missing_ticket_returns_none(ticket_repository: TicketRepository):
    result = await ticket_repository.update_ticket(
        404,
        {"notes": "x"},
        history=NewHistoryEntry(HistoryAction.NOTE_ADDED, "x", None, NOW),
    )

    assert result is None
    assert await ticket_repository.get_history(404) == []


@pytest.mark.asyncio
async def test_delete_ticket_removes_history_and_rating(
    ticket_repository: TicketRepository, session_factory: async_sessionmaker
):
    ticket = await _create(ticket_repository, "20240315-0001")
    async with session_factory() as session:
        async with session.begin():
            session.add(RatingTable(ticket_id=ticket.id, rating=5, comment=None, created_at=NOW))

    assert await ticket_repository.delete_ticket(ticket.id) is True
    assert await ticket_repository.delete_ticket(ticket.id) is False
    assert await ticket_repository.get_ticket(ticket.id) is None

    async with session_factory() as session:
        history_count = (await session.execute(select(func.count(TicketHistoryTable.id)))).scalar_one()
        rating_count = (await session.execute(select(func.count(RatingTable.id)))).scalar_one()
    assert history_count == 0
    assert rating_count == 0


@pytest.mark.asyncio
async def test_count_by_status_includes_empty_statuses(ticket_repository: TicketRepository):
    await _create(ticket_repository, "20240315-0001")
    await _create(ticket_repository, "20240315-0002")

    counts = await ticket_repository.count_by_status()

    assert counts == {TicketStatus.OPEN: 2, TicketStatus.IN_PROGRESS: 0, TicketStatus.FINALIZED: 0}
