"""SQLModel table definitions for the maintenance desk data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, SmallInteger, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class TechnicianTable(SQLModel, table=True):
    """Staff members that can be made responsible for a ticket."""

    __tablename__ = "technicians"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(320), nullable=True))
    phone: str | None = Field(default=None, sa_column=Column(String(20), nullable=True))
    specialty: str | None = Field(default=None, sa_column=Column(String(100), nullable=True))
    active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Maintenance requests filed by requesters."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    ticket_number: str = Field(sa_column=Column(String(50), nullable=False, unique=True, index=True))
    requester_name: str = Field(sa_column=Column(String(255), nullable=False))
    requester_email: str = Field(sa_column=Column(String(320), nullable=False))
    location: str = Field(sa_column=Column(String(255), nullable=False))
    problem_type: str = Field(sa_column=Column(String(20), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    urgency: str = Field(sa_column=Column(String(10), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    image_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    image_key: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    technician_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True),
    )
    notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    estimated_completion: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    completed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class RatingTable(SQLModel, table=True):
    """Post-resolution feedback, at most one row per ticket."""

    __tablename__ = "ratings"
    __table_args__ = (CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_rating_range"),)

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, unique=True
        )
    )
    rating: int = Field(sa_column=Column(SmallInteger, nullable=False))
    comment: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketHistoryTable(SQLModel, table=True):
    """Append-only audit trail of actions taken on a ticket."""

    __tablename__ = "ticket_history"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    action: str = Field(sa_column=Column(String(100), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    performed_by: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class SettingTable(SQLModel, table=True):
    """Persisted key/value overrides of the process configuration."""

    __tablename__ = "settings"

    id: int | None = Field(default=None, primary_key=True)
    key: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    value: str = Field(sa_column=Column(Text, nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
