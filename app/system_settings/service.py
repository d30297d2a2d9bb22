from __future__ import annotations

import logging

from pydantic import EmailStr, TypeAdapter, ValidationError

from app.core.config import Settings
from app.core.errors import InputValidationError, NotFoundError
from app.notifications.mailer import MailConfig

from .repository import Setting, SettingRepository

logger = logging.getLogger(__name__)

NOTIFICATION_EMAIL_KEY = "notification_email"
SMTP_KEYS = ["smtp_host", "smtp_port", "smtp_user", "smtp_pass"]
MAX_KEY_LENGTH = 100

_email_address = TypeAdapter(EmailStr)


class SettingNotFoundError(NotFoundError):
    """Raised when a setting key has no persisted value."""


class SystemSettingsService:
    """Persisted settings layered over the process configuration.

    SMTP credentials stored in the database win over the environment only when
    host, user and password are all present; a partial override is ignored.
    """

    def __init__(self, repository: SettingRepository, *, defaults: Settings) -> None:
        self.repository = repository
        self._defaults = defaults

    async def get_setting(self, key: str) -> Setting:
        setting = await self.repository.get_setting(key)
        if setting is None:
            raise SettingNotFoundError(f"Setting {key} not found")
        return setting

    async def set_setting(self, key: str, value: str, description: str | None = None) -> Setting:
        key = (key or "").strip()
        if not key or len(key) > MAX_KEY_LENGTH:
            raise InputValidationError(f"Setting key must have between 1 and {MAX_KEY_LENGTH} characters")
        if value is None:
            raise InputValidationError("Setting value is required")
        if key == NOTIFICATION_EMAIL_KEY and value.strip():
            try:
                value = _email_address.validate_python(value.strip())
            except ValidationError as exc:
                raise InputValidationError.from_pydantic(exc) from exc
        setting = await self.repository.upsert_setting(key, value, description)
        logger.info("Setting %s updated", key)
        return setting

    async def list_settings(self) -> list[Setting]:
        return await self.repository.list_settings()

    async def notification_address(self) -> str | None:
        setting = await self.repository.get_setting(NOTIFICATION_EMAIL_KEY)
        if setting is not None and setting.value.strip():
            return setting.value.strip()
        return self._defaults.notification_email

    async def mail_config(self) -> MailConfig:
        defaults = self._defaults
        base = MailConfig(
            host=defaults.smtp_host,
            port=defaults.smtp_port,
            user=defaults.smtp_user,
            password=defaults.smtp_pass,
            sender_name=defaults.smtp_sender_name,
            use_tls=defaults.smtp_use_tls,
            timeout=defaults.smtp_timeout,
        )

        stored = await self.repository.get_values(SMTP_KEYS)
        host = stored.get("smtp_host")
        user = stored.get("smtp_user")
        password = stored.get("smtp_pass")
        if not (host and user and password):
            return base

        port = defaults.smtp_port
        raw_port = stored.get("smtp_port")
        if raw_port:
            try:
                port = int(raw_port)
            except ValueError:
                logger.warning("Ignoring invalid smtp_port setting %r", raw_port)

        logger.debug("Using SMTP credentials from persisted settings")
        return MailConfig(
            host=host,
            port=port,
            user=user,
            password=password,
            sender_name=base.sender_name,
            use_tls=base.use_tls,
            timeout=base.timeout,
        )
