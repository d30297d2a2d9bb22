from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from app.core.errors import InputValidationError, NotFoundError

from .models import Technician, TechnicianChanges, TechnicianDraft
from .repository import TechnicianRepository

logger = logging.getLogger(__name__)


class TechnicianNotFoundError(NotFoundError):
    """Raised when a technician id does not resolve to a record."""


class TechnicianService:
    """Create, edit and soft-delete technicians."""

    def __init__(self, repository: TechnicianRepository) -> None:
        self._repository = repository

    async def list_technicians(self, *, include_inactive: bool = False) -> list[Technician]:
        return await self._repository.list_technicians(include_inactive=include_inactive)

    async def get_technician(self, technician_id: int) -> Technician:
        technician = await self._repository.get_technician(technician_id)
        if technician is None:
            raise TechnicianNotFoundError(f"Technician {technician_id} not found")
        return technician

    async def create_technician(
        self,
        *,
        name: str,
        email: str | None = None,
        phone: str | None = None,
        specialty: str | None = None,
    ) -> Technician:
        try:
            draft = TechnicianDraft(name=name, email=email or None, phone=phone or None, specialty=specialty or None)
        except ValidationError as exc:
            raise InputValidationError.from_pydantic(exc) from exc

        technician = await self._repository.create_technician(
            name=draft.name,
            email=str(draft.email) if draft.email else None,
            phone=draft.phone,
            specialty=draft.specialty,
        )
        logger.info("Technician %s created (%s)", technician.id, technician.name)
        return technician

    async def update_technician(self, technician_id: int, **changes: Any) -> Technician:
        try:
            validated = TechnicianChanges(**changes)
        except ValidationError as exc:
            raise InputValidationError.from_pydantic(exc) from exc

        updates = validated.model_dump(exclude_unset=True)
        if updates.get("name", "") is None:
            raise InputValidationError("Technician name cannot be empty")
        if updates.get("email") is not None:
            updates["email"] = str(updates["email"])

        technician = await self._repository.update_technician(technician_id, updates)
        if technician is None:
            raise TechnicianNotFoundError(f"Technician {technician_id} not found")
        return technician

    async def deactivate_technician(self, technician_id: int) -> Technician:
        technician = await self._repository.update_technician(technician_id, {"active": False})
        if technician is None:
            raise TechnicianNotFoundError(f"Technician {technician_id} not found")
        logger.info("Technician %s deactivated", technician_id)
        return technician
