from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import Settings
from app.core.errors import InputValidationError
from app.system_settings.repository import SettingRepository
from app.system_settings.service import SettingNotFoundError, SystemSettingsService


@pytest.fixture
def defaults() -> Settings:
    return Settings(
        _env_file=None,
        smtp_host="smtp.env.sesc.org.br",
        smtp_port=2525,
        smtp_user="env-user",
        smtp_pass="env-pass",
        notification_email="env@sesc.org.br",
    )


@pytest.fixture
def settings_service(session_factory: async_sessionmaker, defaults: Settings) -> SystemSettingsService:
    return SystemSettingsService(SettingRepository(session_factory), defaults=defaults)


@pytest.mark.asyncio
async def test_set_setting_upserts(settings_service: SystemSettingsService):
    first = await settings_service.set_setting("notification_email", "a@sesc.org.br", "Destino dos avisos")
    second = await settings_service.set_setting("notification_email", "b@sesc.org.br")

    assert second.id == first.id
    assert second.value == "b@sesc.org.br"
    assert second.description == "Destino dos avisos"
    assert [setting.key for setting in await settings_service.list_settings()] == ["notification_email"]


@pytest.mark.asyncio
async def test_get_missing_setting(settings_service: SystemSettingsService):
    with pytest.raises(SettingNotFoundError):
        await settings_service.get_setting("smtp_host")


@pytest.mark.asyncio
async def test_set_setting_rejects_blank_key(settings_service: SystemSettingsService):
    with pytest.raises(InputValidationError):
        await settings_service.set_setting("  ", "x")


@pytest.mark.asyncio
async def test_notification_address_prefers_persisted_value(settings_service: SystemSettingsService):
    assert await settings_service.notification_address() == "env@sesc.org.br"

    await settings_service.set_setting("notification_email", "chefia@sesc.org.br")

    assert await settings_service.notification_address() == "chefia@sesc.org.br"


@pytest.mark.asyncio
async def test_mail_config_falls_back_to_environment(settings_service: SystemSettingsService):
    config = await settings_service.mail_config()

    assert config.host == "smtp.env.sesc.org.br"
    assert config.port == 2525
    assert config.user == "env-user"
    assert config.is_complete


@pytest.mark.asyncio
async def test_partial_persisted_smtp_settings_are_ignored(settings_service: SystemSettingsService):
    await settings_service.set_setting("smtp_host", "smtp.db.sesc.org.br")
    await settings_service.set_setting("smtp_user", "db-user")

    config = await settings_service.mail_config()

    assert config.host == "smtp.env.sesc.org.br"
    assert config.user == "env-user"


@pytest.mark.asyncio
async def test_complete_persisted_smtp_settings_take_precedence(settings_service: SystemSettingsService):
    await settings_service.set_setting("smtp_host", "smtp.db.sesc.org.br")
    await settings_service.set_setting("smtp_port", "465")
    await settings_service.set_setting("smtp_user", "db-user")
    await settings_service.set_setting("smtp_pass", "db-pass")

    config = await settings_service.mail_config()

    assert config.host == "smtp.db.sesc.org.br"
    assert config.port == 465
    assert config.user == "db-user"
    assert config.password == "db-pass"


@pytest.mark.asyncio
async def test_invalid_persisted_port_keeps_default(settings_service: SystemSettingsService):
    for key, value in {"smtp_host": "h", "smtp_port": "abc", "smtp_user": "u", "smtp_pass": "p"}.items():
        await settings_service.set_setting(key, value)

    config = await settings_service.mail_config()

    assert config.host == "h"
    assert config.port == 2525


@pytest.mark.asyncio
async def test_notification_email_must_be_an_address(settings_service: SystemSettingsService):
    with pytest.raises(InputValidationError):
        await settings_service.set_setting("notification_email", "ops@sesc.org.br\nBcc: outsider@example.com")

    with pytest.raises(SettingNotFoundError):
        await settings_service.get_setting("notification_email")

    stored = await settings_service.set_setting("notification_email", "  chefia@sesc.org.br ")
    assert stored.value == "chefia@sesc.org.br"
