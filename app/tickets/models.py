from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .state import ProblemType, TicketStatus, Urgency


class HistoryAction(str, Enum):
    """Vocabulary of the ticket audit trail."""

    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    TECHNICIAN_ASSIGNED = "technician_assigned"
    NOTE_ADDED = "note_added"
    ESTIMATED_COMPLETION_SET = "estimated_completion_set"


@dataclass(slots=True)
class Ticket:
    """Maintenance request filed by a requester."""

    id: int
    ticket_number: str
    requester_name: str
    requester_email: str
    location: str
    problem_type: ProblemType
    description: str
    urgency: Urgency
    status: TicketStatus
    image_url: str | None
    image_key: str | None
    technician_id: int | None
    notes: str | None
    estimated_completion: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class TicketHistoryEntry:
    """History entry describing one action taken on a ticket."""

    id: int
    ticket_id: int
    action: str
    description: str
    performed_by: str | None
    created_at: datetime


@dataclass(slots=True)
class NewHistoryEntry:
    """History entry that has not been persisted yet."""

    action: HistoryAction
    description: str
    performed_by: str | None
    created_at: datetime


@dataclass(slots=True)
class TicketSearchFilters:
    status: TicketStatus | None = None
    problem_type: ProblemType | None = None
    urgency: Urgency | None = None
    location: str | None = None
    search: str | None = None

    def is_empty(self) -> bool:
        return not any((self.status, self.problem_type, self.urgency, self.location, self.search))


@dataclass(slots=True)
class TicketStats:
    total_tickets: int
    open_tickets: int
    in_progress_tickets: int
    completed_tickets: int
    completion_rate: int
