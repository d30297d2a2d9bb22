from __future__ import annotations

from enum import Enum


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "aberto"
    IN_PROGRESS = "em_execucao"
    FINALIZED = "finalizado"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


class ProblemType(str, Enum):
    """Categories a requester can file a ticket under."""

    ELECTRICAL = "eletrica"
    PLUMBING = "hidraulica"
    IT = "informatica"
    CLEANING = "limpeza"
    STRUCTURAL = "estrutural"
    OTHER = "outros"

    @property
    def label(self) -> str:
        return _PROBLEM_TYPE_LABELS[self]


class Urgency(str, Enum):
    LOW = "baixa"
    MEDIUM = "media"
    HIGH = "alta"


_STATUS_LABELS: dict[TicketStatus, str] = {
    TicketStatus.OPEN: "Aberto",
    TicketStatus.IN_PROGRESS: "Em Execução",
    TicketStatus.FINALIZED: "Finalizado",
}

_PROBLEM_TYPE_LABELS: dict[ProblemType, str] = {
    ProblemType.ELECTRICAL: "Elétrica",
    ProblemType.PLUMBING: "Hidráulica",
    ProblemType.IT: "Informática",
    ProblemType.CLEANING: "Limpeza",
    ProblemType.STRUCTURAL: "Estrutural",
    ProblemType.OTHER: "Outros",
}


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    The default machine only moves forward (``aberto`` may skip straight to
    ``finalizado``). A permissive machine accepts any pair of states, which is
    how the board behaved before transitions were guarded.
    """

    _FORWARD_TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
        TicketStatus.OPEN: {TicketStatus.IN_PROGRESS, TicketStatus.FINALIZED},
        TicketStatus.IN_PROGRESS: {TicketStatus.FINALIZED},
        TicketStatus.FINALIZED: set(),
    }

    def __init__(self, *, permissive: bool = False) -> None:
        self._permissive = permissive

    @property
    def permissive(self) -> bool:
        return self._permissive

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.OPEN

    def can_transition(self, current: TicketStatus, new: TicketStatus) -> bool:
        if current == new or self._permissive:
            return True
        return new in self._FORWARD_TRANSITIONS.get(current, set())
