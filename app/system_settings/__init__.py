"""Persisted key/value settings and the mail configuration built from them."""

from .repository import Setting, SettingRepository
from .service import SettingNotFoundError, SystemSettingsService

__all__ = ["Setting", "SettingNotFoundError", "SettingRepository", "SystemSettingsService"]
