from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request

from app.dependencies.auth import Role, User, role_required
from app.notifications.dispatcher import NotificationDispatcher
from app.ratings.service import RatingService
from app.services.database import DatabaseConnectionTester
from app.system_settings.service import SystemSettingsService
from app.technicians.service import TechnicianService
from app.tickets.service import TicketService

require_staff = role_required(Role.STAFF)

StaffUser = Annotated[User, Depends(require_staff)]


def _state_attribute(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return value


async def get_ticket_service(request: Request) -> TicketService:
    return _state_attribute(request, "ticket_service", "Ticket service")


async def get_technician_service(request: Request) -> TechnicianService:
    return _state_attribute(request, "technician_service", "Technician service")


async def get_rating_service(request: Request) -> RatingService:
    return _state_attribute(request, "rating_service", "Rating service")


async def get_settings_service(request: Request) -> SystemSettingsService:
    return _state_attribute(request, "settings_service", "Settings service")


async def get_notifier(request: Request) -> NotificationDispatcher:
    return _state_attribute(request, "notifier", "Notification dispatcher")


async def get_database_tester(request: Request) -> DatabaseConnectionTester:
    return _state_attribute(request, "database_tester", "Database connection")


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
TechnicianServiceDep = Annotated[TechnicianService, Depends(get_technician_service)]
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
SettingsServiceDep = Annotated[SystemSettingsService, Depends(get_settings_service)]
NotifierDep = Annotated[NotificationDispatcher, Depends(get_notifier)]
DatabaseTesterDep = Annotated[DatabaseConnectionTester, Depends(get_database_tester)]
