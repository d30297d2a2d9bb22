from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.api.errors import to_http_exception
from app.core.errors import MaintenanceDeskError
from app.dependencies.services import NotifierDep, SettingsServiceDep, StaffUser
from app.system_settings.repository import Setting

router = APIRouter(prefix="/settings", tags=["settings"])

_SECRET_KEYS = frozenset({"smtp_pass"})


class SettingUpdateRequest(BaseModel):
    value: str
    description: str | None = Field(default=None, max_length=500)


class EmailCheckRequest(BaseModel):
    email: EmailStr


class EmailCheckResponse(BaseModel):
    sent: bool


class SettingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: str
    description: str | None
    updated_at: datetime


def _to_response(setting: Setting) -> SettingResponse:
    response = SettingResponse.model_validate(setting)
    if setting.key in _SECRET_KEYS and response.value:
        response.value = "********"
    return response


@router.get("", response_model=list[SettingResponse])
async def list_settings(service: SettingsServiceDep, _: StaffUser) -> list[SettingResponse]:
    return [_to_response(setting) for setting in await service.list_settings()]


@router.post("/test-email", response_model=EmailCheckResponse)
async def send_test_email(payload: EmailCheckRequest, notifier: NotifierDep, _: StaffUser) -> EmailCheckResponse:
    sent = await notifier.send_test_email(str(payload.email))
    return EmailCheckResponse(sent=sent)


@router.get("/{key}", response_model=SettingResponse)
async def get_setting(key: str, service: SettingsServiceDep, _: StaffUser) -> SettingResponse:
    try:
        setting = await service.get_setting(key)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(setting)


@router.put("/{key}", response_model=SettingResponse)
async def set_setting(
    key: str,
    payload: SettingUpdateRequest,
    service: SettingsServiceDep,
    _: StaffUser,
) -> SettingResponse:
    try:
        setting = await service.set_setting(key, payload.value, payload.description)
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(setting)
