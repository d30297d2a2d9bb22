"""Error taxonomy shared by the ticket, technician, rating and settings services."""

from __future__ import annotations

from typing import Any, Sequence

from pydantic import ValidationError


class MaintenanceDeskError(RuntimeError):
    """Base error for every failure raised by the service layer."""


class InputValidationError(MaintenanceDeskError):
    """Raised when caller supplied data is missing or malformed.

    ``errors`` mirrors the list shape produced by pydantic so the API can return
    it unchanged as the response detail.
    """

    def __init__(self, message: str, *, errors: Sequence[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors: list[dict[str, Any]] = list(errors or [])

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "InputValidationError":
        errors = [
            {
                "loc": list(error.get("loc", ())),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        fields = ", ".join(".".join(str(part) for part in item["loc"]) for item in errors) or "input"
        return cls(f"Invalid value for: {fields}", errors=errors)


class NotFoundError(MaintenanceDeskError):
    """Raised when an operation targets a record that does not exist."""


class ConflictError(MaintenanceDeskError):
    """Raised when the current state of a record rejects the operation."""


class InfrastructureError(MaintenanceDeskError):
    """Raised when an essential collaborator (database, storage) fails."""


class DatabaseUnavailableError(InfrastructureError):
    """Raised when the database cannot be reached."""
