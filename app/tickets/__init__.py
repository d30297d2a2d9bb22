"""Ticket domain models, lifecycle states and the submission schema.

The service lives in :mod:`app.tickets.service` and is imported from there; it
depends on the notification package, which itself renders these models.
"""

from .models import HistoryAction, Ticket, TicketHistoryEntry, TicketSearchFilters, TicketStats
from .state import ProblemType, TicketStateMachine, TicketStatus, Urgency
from .submission import ImagePayload, TicketSubmission

__all__ = [
    "HistoryAction",
    "ImagePayload",
    "ProblemType",
    "Ticket",
    "TicketHistoryEntry",
    "TicketSearchFilters",
    "TicketStateMachine",
    "TicketStats",
    "TicketStatus",
    "TicketSubmission",
    "Urgency",
]
