"""Database models and utilities."""

from .models import (
    RatingTable,
    SettingTable,
    TechnicianTable,
    TicketHistoryTable,
    TicketTable,
)

__all__ = [
    "RatingTable",
    "SettingTable",
    "TechnicianTable",
    "TicketHistoryTable",
    "TicketTable",
]
