"""Technicians that can be made responsible for tickets."""

from .models import Technician
from .repository import TechnicianRepository
from .service import TechnicianNotFoundError, TechnicianService

__all__ = [
    "Technician",
    "TechnicianNotFoundError",
    "TechnicianRepository",
    "TechnicianService",
]
