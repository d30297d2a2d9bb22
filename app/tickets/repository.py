from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.database import create_schema, ensure_datetime, ensure_optional_datetime
from packages.db.models import RatingTable, TicketHistoryTable, TicketTable

from .models import NewHistoryEntry, Ticket, TicketHistoryEntry, TicketSearchFilters
from .state import ProblemType, TicketStatus, Urgency

_UPDATABLE_FIELDS = frozenset(
    {"status", "technician_id", "notes", "estimated_completion", "completed_at"}
)


class DuplicateTicketNumberError(RuntimeError):
    """Raised when the ticket number is already taken by another row."""

    def __init__(self, ticket_number: str) -> None:
        super().__init__(f"Ticket number {ticket_number} already exists")
        self.ticket_number = ticket_number


class TicketRepository:
    """Persistence helper wrapping the `tickets` and `ticket_history` tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        await create_schema(self._engine)

    async def latest_ticket_number(self, prefix: str) -> str | None:
        """Return the highest ticket number starting with ``prefix-``."""

        column = TicketTable.ticket_number
        statement = (
            select(column)
            .where(column.like(f"{prefix}-%"))
            .order_by(func.length(column).desc(), column.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return result.scalars().first()

    async def create_ticket(
        self,
        *,
        ticket_number: str,
        requester_name: str,
        requester_email: str,
        location: str,
        problem_type: ProblemType,
        description: str,
        urgency: Urgency,
        status: TicketStatus,
        image_url: str | None,
        image_key: str | None,
        history: NewHistoryEntry,
    ) -> Ticket:
        row = TicketTable(
            ticket_number=ticket_number,
            requester_name=requester_name,
            requester_email=requester_email,
            location=location,
            problem_type=problem_type.value,
            description=description,
            urgency=urgency.value,
            status=status.value,
            image_url=image_url,
            image_key=image_key,
            created_at=history.created_at,
            updated_at=history.created_at,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                    await session.flush()
                    session.add(self._history_row(row.id, history))
        except IntegrityError as exc:
            if await self.get_ticket_by_number(ticket_number) is not None:
                raise DuplicateTicketNumberError(ticket_number) from exc
            raise
        return self._table_to_ticket(row)

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
            if row is None:
                return None
            return self._table_to_ticket(row)

    async def get_ticket_by_number(self, ticket_number: str) -> Ticket | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketTable).where(TicketTable.ticket_number == ticket_number).limit(1)
            )
            row = result.scalars().first()
            if row is None:
                return None
            return self._table_to_ticket(row)

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        statement = select(TicketTable)
        if status is not None:
            statement = statement.where(TicketTable.status == status.value)
        return await self._fetch_tickets(statement)

    async def search_tickets(self, filters: TicketSearchFilters) -> list[Ticket]:
        statement = select(TicketTable)
        if filters.status is not None:
            statement = statement.where(TicketTable.status == filters.status.value)
        if filters.problem_type is not None:
            statement = statement.where(TicketTable.problem_type == filters.problem_type.value)
        if filters.urgency is not None:
            statement = statement.where(TicketTable.urgency == filters.urgency.value)
        if filters.location:
            statement = statement.where(
                TicketTable.location.icontains(filters.location, autoescape=True)
            )
        if filters.search:
            term = filters.search
            statement = statement.where(
                TicketTable.ticket_number.icontains(term, autoescape=True)
                | TicketTable.requester_name.icontains(term, autoescape=True)
                | TicketTable.description.icontains(term, autoescape=True)
            )
        return await self._fetch_tickets(statement)

    async def count_by_status(self) -> dict[TicketStatus, int]:
        statement = select(TicketTable.status, func.count()).group_by(TicketTable.status)
        async with self._session_factory() as session:
            result = await session.execute(statement)
            rows = result.all()
        counts = {status: 0 for status in TicketStatus}
        for status, total in rows:
            counts[TicketStatus(status)] = int(total)
        return counts

    async def update_ticket(
        self,
        ticket_id: int,
        changes: Mapping[str, Any],
        *,
        history: NewHistoryEntry,
    ) -> Ticket | None:
        """Apply ``changes`` and append ``history`` in a single transaction."""

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(TicketTable, ticket_id)
                if row is None:
                    return None
                for field, value in changes.items():
                    if isinstance(value, TicketStatus):
                        value = value.value
                    setattr(row, field, value)
                row.updated_at = history.created_at
                session.add(self._history_row(ticket_id, history))
            return self._table_to_ticket(row)

    async def delete_ticket(self, ticket_id: int) -> bool:
        """Delete the ticket together with its history and rating rows."""

        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(TicketTable, ticket_id)
                if row is None:
                    return False
                await session.execute(delete(TicketHistoryTable).where(TicketHistoryTable.ticket_id == ticket_id))
                await session.execute(delete(RatingTable).where(RatingTable.ticket_id == ticket_id))
                await session.delete(row)
        return True

    async def get_history(self, ticket_id: int) -> list[TicketHistoryEntry]:
        statement = (
            select(TicketHistoryTable)
            .where(TicketHistoryTable.ticket_id == ticket_id)
            .order_by(TicketHistoryTable.created_at.desc(), TicketHistoryTable.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_history(row) for row in result.scalars().all()]

    async def _fetch_tickets(self, statement: Any) -> list[Ticket]:
        statement = statement.order_by(TicketTable.created_at.desc(), TicketTable.id.desc())
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    @staticmethod
    def _history_row(ticket_id: int | None, history: NewHistoryEntry) -> TicketHistoryTable:
        if ticket_id is None:
            raise RuntimeError("Ticket row has no primary key")
        return TicketHistoryTable(
            ticket_id=ticket_id,
            action=history.action.value,
            description=history.description,
            performed_by=history.performed_by,
            created_at=history.created_at,
        )

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        if row.id is None:
            raise RuntimeError("Ticket row has no primary key")
        return Ticket(
            id=row.id,
            ticket_number=row.ticket_number,
            requester_name=row.requester_name,
            requester_email=row.requester_email,
            location=row.location,
            problem_type=ProblemType(row.problem_type),
            description=row.description,
            urgency=Urgency(row.urgency),
            status=TicketStatus(row.status),
            image_url=row.image_url,
            image_key=row.image_key,
            technician_id=row.technician_id,
            notes=row.notes,
            estimated_completion=ensure_optional_datetime(row.estimated_completion),
            completed_at=ensure_optional_datetime(row.completed_at),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )

    @staticmethod
    def _table_to_history(row: TicketHistoryTable) -> TicketHistoryEntry:
        return TicketHistoryEntry(
            id=row.id or 0,
            ticket_id=row.ticket_id,
            action=row.action,
            description=row.description,
            performed_by=row.performed_by,
            created_at=ensure_datetime(row.created_at),
        )

