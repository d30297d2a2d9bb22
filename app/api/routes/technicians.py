from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict

from app.api.errors import to_http_exception
from app.core.errors import MaintenanceDeskError
from app.dependencies.services import StaffUser, TechnicianServiceDep
from app.technicians.models import Technician

router = APIRouter(prefix="/technicians", tags=["technicians"])


class TechnicianCreateRequest(BaseModel):
    name: str
    email: str | None = None
    phone: str | None = None
    specialty: str | None = None


class TechnicianUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    specialty: str | None = None


class TechnicianResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str | None
    phone: str | None
    specialty: str | None
    active: bool
    created_at: datetime
    updated_at: datetime


def _to_response(technician: Technician) -> TechnicianResponse:
    return TechnicianResponse.model_validate(technician)


@router.get("", response_model=list[TechnicianResponse])
async def list_technicians(
    service: TechnicianServiceDep,
    include_inactive: bool = Query(default=False),
) -> list[TechnicianResponse]:
    technicians = await service.list_technicians(include_inactive=include_inactive)
    return [_to_response(technician) for technician in technicians]


@router.get("/{technician_id}", response_model=TechnicianResponse)
async def get_technician(technician_id: int, service: TechnicianServiceDep) -> TechnicianResponse:
    try:
        technician = await service.get_technician(technician_id)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(technician)


@router.post("", response_model=TechnicianResponse, status_code=status.HTTP_201_CREATED)
async def create_technician(
    payload: TechnicianCreateRequest,
    service: TechnicianServiceDep,
    _: StaffUser,
) -> TechnicianResponse:
    try:
        technician = await service.create_technician(**payload.model_dump())
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(technician)


@router.patch("/{technician_id}", response_model=TechnicianResponse)
async def update_technician(
    technician_id: int,
    payload: TechnicianUpdateRequest,
    service: TechnicianServiceDep,
    _: StaffUser,
) -> TechnicianResponse:
    try:
        technician = await service.update_technician(technician_id, **payload.model_dump(exclude_unset=True))
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(technician)


@router.post("/{technician_id}/deactivate", response_model=TechnicianResponse)
async def deactivate_technician(
    technician_id: int,
    service: TechnicianServiceDep,
    _: StaffUser,
) -> TechnicianResponse:
    try:
        technician = await service.deactivate_technician(technician_id)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(technician)
