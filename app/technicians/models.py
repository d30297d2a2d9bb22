from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


@dataclass(slots=True)
class Technician:
    """Staff member optionally responsible for tickets."""

    id: int
    name: str
    email: str | None
    phone: str | None
    specialty: str | None
    active: bool
    created_at: datetime
    updated_at: datetime


class TechnicianDraft(BaseModel):
    """Validated input for creating a technician."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    specialty: str | None = Field(default=None, max_length=100)


class TechnicianChanges(BaseModel):
    """Validated partial update of a technician; unset fields are left alone."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    specialty: str | None = Field(default=None, max_length=100)
