from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.errors import to_http_exception
from app.core.errors import MaintenanceDeskError
from app.dependencies.services import StaffUser, TicketServiceDep
from app.tickets.models import Ticket, TicketHistoryEntry, TicketSearchFilters
from app.tickets.state import ProblemType, TicketStatus, Urgency
from app.tickets.submission import TicketSubmission

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreatedResponse(BaseModel):
    id: int
    ticket_number: str


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus


class TechnicianAssignmentRequest(BaseModel):
    technician_id: int


class TicketNoteRequest(BaseModel):
    note: str = Field(..., min_length=1)


class EstimatedCompletionRequest(BaseModel):
    estimated_completion: datetime


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    technician_id: int | None
    notes: str | None
    estimated_completion: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class TicketHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    action: str
    description: str
    performed_by: str | None
    created_at: datetime


class TicketStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_tickets: int
    open_tickets: int
    in_progress_tickets: int
    completed_tickets: int
    completion_rate: int


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_history_response(entry: TicketHistoryEntry) -> TicketHistoryResponse:
    return TicketHistoryResponse.model_validate(entry)


@router.post("", response_model=TicketCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketSubmission, service: TicketServiceDep) -> TicketCreatedResponse:
    try:
        ticket = await service.create_ticket(payload)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return TicketCreatedResponse(id=ticket.id, ticket_number=ticket.ticket_number)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    tickets = await service.list_tickets(status=status_filter)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/search", response_model=list[TicketResponse])
async def search_tickets(
    service: TicketServiceDep,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    problem_type: ProblemType | None = Query(default=None),
    urgency: Urgency | None = Query(default=None),
    location: str | None = Query(default=None),
    search: str | None = Query(default=None),
) -> list[TicketResponse]:
    filters = TicketSearchFilters(
        status=status_filter,
        problem_type=problem_type,
        urgency=urgency,
        location=location or None,
        search=search or None,
    )
    tickets = await service.search_tickets(filters)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/stats", response_model=TicketStatsResponse)
async def ticket_stats(service: TicketServiceDep) -> TicketStatsResponse:
    return TicketStatsResponse.model_validate(await service.stats())


@router.get("/by-number/{ticket_number}", response_model=TicketResponse)
async def get_ticket_by_number(ticket_number: str, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.get_ticket_by_number(ticket_number)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: int, service: TicketServiceDep) -> TicketResponse:
    try:
        ticket = await service.get_ticket(ticket_id)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(ticket_id: int, service: TicketServiceDep, _: StaffUser) -> None:
    try:
        await service.delete_ticket(ticket_id)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: int,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    user: StaffUser,
) -> TicketResponse:
    try:
        ticket = await service.change_status(ticket_id, new_status=payload.status, actor=user.actor_name)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/technician", response_model=TicketResponse)
async def assign_technician(
    ticket_id: int,
    payload: TechnicianAssignmentRequest,
    service: TicketServiceDep,
    user: StaffUser,
) -> TicketResponse:
    try:
        ticket = await service.assign_technician(
            ticket_id, technician_id=payload.technician_id, actor=user.actor_name
        )
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/notes", response_model=TicketResponse)
async def append_note(
    ticket_id: int,
    payload: TicketNoteRequest,
    service: TicketServiceDep,
    user: StaffUser,
) -> TicketResponse:
    try:
        ticket = await service.append_note(ticket_id, note=payload.note, actor=user.actor_name)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.put("/{ticket_id}/estimated-completion", response_model=TicketResponse)
async def set_estimated_completion(
    ticket_id: int,
    payload: EstimatedCompletionRequest,
    service: TicketServiceDep,
    user: StaffUser,
) -> TicketResponse:
    try:
        ticket = await service.set_estimated_completion(
            ticket_id,
            estimated_completion=payload.estimated_completion,
            actor=user.actor_name,
        )
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.get("/{ticket_id}/history", response_model=list[TicketHistoryResponse])
async def get_ticket_history(ticket_id: int, service: TicketServiceDep) -> list[TicketHistoryResponse]:
    try:
        entries = await service.get_history(ticket_id)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return [_to_history_response(entry) for entry in entries]
