from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo

from opentelemetry import trace
from pydantic import ValidationError

from app.core.errors import ConflictError, InputValidationError, NotFoundError
from app.notifications.dispatcher import NotificationDispatcher
from app.storage.object_store import ObjectStorage, StoredObject
from app.technicians.repository import TechnicianRepository
from app.technicians.service import TechnicianNotFoundError

from .models import HistoryAction, NewHistoryEntry, Ticket, TicketHistoryEntry, TicketSearchFilters, TicketStats
from .numbering import TicketNumberGenerator
from .repository import DuplicateTicketNumberError, TicketRepository
from .state import TicketStateMachine, TicketStatus
from .submission import ImagePayload, TicketSubmission

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_ACTOR = "Administrador"
HISTORY_SUMMARY_LENGTH = 100


class TicketNotFoundError(NotFoundError):
    """Raised when a ticket could not be located."""


class InvalidTicketTransitionError(ConflictError):
    """Raised when attempting to transition to an invalid state."""


class TicketNumberConflictError(ConflictError):
    """Raised when no free ticket number was found within the allowed attempts."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _actor_name(actor: str | None) -> str:
    return (actor or "").strip() or DEFAULT_ACTOR


def summarize(text: str, limit: int = HISTORY_SUMMARY_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class TicketService:
    """High level orchestration for ticket lifecycle operations."""

    def __init__(
        self,
        repository: TicketRepository,
        *,
        technicians: TechnicianRepository,
        notifier: NotificationDispatcher,
        storage: ObjectStorage,
        state_machine: TicketStateMachine | None = None,
        numbering: TicketNumberGenerator | None = None,
        clock: Callable[[], datetime] = _utcnow,
        max_number_attempts: int = 5,
        display_timezone: str = "America/Sao_Paulo",
        send_rating_request_on_finalize: bool = True,
    ) -> None:
        if max_number_attempts < 1:
            raise ValueError("max_number_attempts must be at least 1")
        self.repository = repository
        self.technicians = technicians
        self.notifier = notifier
        self.storage = storage
        self.state_machine = state_machine or TicketStateMachine()
        self.numbering = numbering or TicketNumberGenerator(repository, clock=clock)
        self._clock = clock
        self._max_number_attempts = max_number_attempts
        self._display_tz = ZoneInfo(display_timezone)
        self._send_rating_request = send_rating_request_on_finalize

    async def ensure_schema(self) -> None:
        await self.repository.ensure_schema()

    async def create_ticket(self, submission: TicketSubmission | Mapping[str, Any]) -> Ticket:
        """Validate, persist and announce a new ticket.

        Validation happens before any side effect. The photo is uploaded once;
        the insert is retried with a fresh number when another request took
        the candidate first. Emails are sent after the commit and their
        failure is only logged.
        """

        if not isinstance(submission, TicketSubmission):
            try:
                submission = TicketSubmission.model_validate(submission)
            except ValidationError as exc:
                raise InputValidationError.from_pydantic(exc) from exc

        with tracer.start_as_current_span("ticket.create") as span:
            ticket_number = await self.numbering.next_number()
            stored: StoredObject | None = None
            if submission.image is not None:
                stored = await self._store_image(ticket_number, submission.image)

            ticket: Ticket | None = None
            for attempt in range(1, self._max_number_attempts + 1):
                now = self._clock()
                try:
                    ticket = await self.repository.create_ticket(
                        ticket_number=ticket_number,
                        requester_name=submission.requester_name,
                        requester_email=str(submission.requester_email),
                        location=submission.location,
                        problem_type=submission.problem_type,
                        description=submission.description,
                        urgency=submission.urgency,
                        status=self.state_machine.initial_state(),
                        image_url=stored.url if stored else None,
                        image_key=stored.key if stored else None,
                        history=NewHistoryEntry(
                            action=HistoryAction.CREATED,
                            description="Chamado criado",
                            performed_by=submission.requester_name,
                            created_at=now,
                        ),
                    )
                    break
                except DuplicateTicketNumberError:
                    logger.warning(
                        "Ticket number %s already taken (attempt %d/%d)",
                        ticket_number,
                        attempt,
                        self._max_number_attempts,
                    )
                    if attempt < self._max_number_attempts:
                        ticket_number = await self.numbering.next_number()

            if ticket is None:
                raise TicketNumberConflictError(
                    f"Could not allocate a ticket number after {self._max_number_attempts} attempts"
                )
            span.set_attribute("ticket.number", ticket.ticket_number)

        logger.info("Ticket %s created by %s", ticket.ticket_number, ticket.requester_email)
        await self.notifier.notify_new_ticket(ticket)
        await self.notifier.send_confirmation(ticket)
        return ticket

    async def get_ticket(self, ticket_id: int) -> Ticket:
        ticket = await self.repository.get_ticket(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def get_ticket_by_number(self, ticket_number: str) -> Ticket:
        ticket = await self.repository.get_ticket_by_number(ticket_number.strip())
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_number} not found")
        return ticket

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        return await self.repository.list_tickets(status=status)

    async def search_tickets(self, filters: TicketSearchFilters | None = None) -> list[Ticket]:
        if filters is None or filters.is_empty():
            return await self.repository.list_tickets()
        return await self.repository.search_tickets(filters)

    async def stats(self) -> TicketStats:
        counts = await self.repository.count_by_status()
        total = sum(counts.values())
        completed = counts[TicketStatus.FINALIZED]
        return TicketStats(
            total_tickets=total,
            open_tickets=counts[TicketStatus.OPEN],
            in_progress_tickets=counts[TicketStatus.IN_PROGRESS],
            completed_tickets=completed,
            completion_rate=int(completed * 100 / total + 0.5) if total else 0,
        )

    async def change_status(
        self,
        ticket_id: int,
        *,
        new_status: TicketStatus | str,
        actor: str | None = None,
    ) -> Ticket:
        try:
            target = TicketStatus(new_status)
        except ValueError as exc:
            raise InputValidationError(f"Unknown ticket status: {new_status}") from exc

        ticket = await self.get_ticket(ticket_id)
        if ticket.status == target:
            return ticket

        if not self.state_machine.can_transition(ticket.status, target):
            raise InvalidTicketTransitionError(
                f"Cannot transition {ticket.status.value} -> {target.value}"
            )

        with tracer.start_as_current_span("ticket.change_status") as span:
            span.set_attribute("ticket.number", ticket.ticket_number)
            span.set_attribute("ticket.status", target.value)
            now = self._clock()
            changes: dict[str, Any] = {"status": target}
            if target is TicketStatus.FINALIZED:
                changes["completed_at"] = now
            elif ticket.status is TicketStatus.FINALIZED:
                changes["completed_at"] = None

            updated = await self.repository.update_ticket(
                ticket_id,
                changes,
                history=NewHistoryEntry(
                    action=HistoryAction.STATUS_CHANGED,
                    description=f"Status alterado para: {target.label}",
                    performed_by=_actor_name(actor),
                    created_at=now,
                ),
            )
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")

        logger.info("Ticket %s moved %s -> %s", updated.ticket_number, ticket.status.value, target.value)
        technician_name = await self._technician_name(updated.technician_id)
        await self.notifier.notify_status_change(updated, technician_name=technician_name)
        if target is TicketStatus.FINALIZED and self._send_rating_request:
            await self.notifier.send_rating_request(updated)
        return updated

    async def assign_technician(self, ticket_id: int, *, technician_id: int, actor: str | None = None) -> Ticket:
        await self.get_ticket(ticket_id)
        technician = await self.technicians.get_technician(technician_id)
        if technician is None:
            raise TechnicianNotFoundError(f"Technician {technician_id} not found")

        updated = await self.repository.update_ticket(
            ticket_id,
            {"technician_id": technician.id},
            history=NewHistoryEntry(
                action=HistoryAction.TECHNICIAN_ASSIGNED,
                description=f"Responsável designado: {technician.name}",
                performed_by=_actor_name(actor),
                created_at=self._clock(),
            ),
        )
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return updated

    async def append_note(self, ticket_id: int, *, note: str, actor: str | None = None) -> Ticket:
        text = (note or "").strip()
        if not text:
            raise InputValidationError("Note cannot be empty")

        ticket = await self.get_ticket(ticket_id)
        author = _actor_name(actor)
        now = self._clock()
        block = f"[{self._format_timestamp(now)}] {author}:\n{text}"
        notes = f"{ticket.notes}\n\n{block}" if ticket.notes else block

        updated = await self.repository.update_ticket(
            ticket_id,
            {"notes": notes},
            history=NewHistoryEntry(
                action=HistoryAction.NOTE_ADDED,
                description=f"Observação adicionada: {summarize(text)}",
                performed_by=author,
                created_at=now,
            ),
        )
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return updated

    async def set_estimated_completion(
        self,
        ticket_id: int,
        *,
        estimated_completion: datetime,
        actor: str | None = None,
    ) -> Ticket:
        await self.get_ticket(ticket_id)
        when = estimated_completion
        if when.tzinfo is None:
            when = when.replace(tzinfo=self._display_tz)

        updated = await self.repository.update_ticket(
            ticket_id,
            {"estimated_completion": when.astimezone(timezone.utc)},
            history=NewHistoryEntry(
                action=HistoryAction.ESTIMATED_COMPLETION_SET,
                description=f"Previsão de conclusão definida para: {when.astimezone(self._display_tz):%d/%m/%Y}",
                performed_by=_actor_name(actor),
                created_at=self._clock(),
            ),
        )
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return updated

    async def delete_ticket(self, ticket_id: int) -> None:
        deleted = await self.repository.delete_ticket(ticket_id)
        if not deleted:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        logger.info("Ticket %s deleted", ticket_id)

    async def get_history(self, ticket_id: int) -> list[TicketHistoryEntry]:
        await self.get_ticket(ticket_id)
        return await self.repository.get_history(ticket_id)

    async def _store_image(self, ticket_number: str, image: ImagePayload) -> StoredObject:
        epoch_ms = int(self._clock().timestamp() * 1000)
        key = f"tickets/{ticket_number}-{epoch_ms}.{image.extension}"
        return await self.storage.put(key, image.content, image.mime_type)

    async def _technician_name(self, technician_id: int | None) -> str | None:
        if technician_id is None:
            return None
        technician = await self.technicians.get_technician(technician_id)
        return technician.name if technician else None

    def _format_timestamp(self, value: datetime) -> str:
        return value.astimezone(self._display_tz).strftime("%d/%m/%Y %H:%M:%S")
