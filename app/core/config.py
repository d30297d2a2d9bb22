from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    app_name: str = Field(default="Maintenance Desk API")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)s %(name)s %(message)s")

    # Database configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./maintenance.db")

    # Ticket lifecycle
    display_timezone: str = Field(default="America/Sao_Paulo")
    strict_status_transitions: bool = Field(default=True)
    require_finalized_for_rating: bool = Field(default=True)
    send_rating_request_on_finalize: bool = Field(default=True)
    ticket_number_max_attempts: int = Field(default=5, ge=1)

    # Mail configuration, overridden by persisted smtp_* settings
    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_user: str | None = Field(default=None)
    smtp_pass: str | None = Field(default=None)
    smtp_sender_name: str = Field(default="Sistema de Manutenção")
    smtp_use_tls: bool = Field(default=True)
    smtp_timeout: float = Field(default=10.0)
    notification_email: str | None = Field(default=None)
    public_base_url: str = Field(default="http://localhost:8000")

    # Object storage
    storage_backend: str = Field(default="local")
    storage_dir: str = Field(default="./uploads")
    storage_public_url: str = Field(default="/uploads")
    storage_endpoint: str | None = Field(default=None)
    storage_api_key: str | None = Field(default=None)
    storage_timeout: float = Field(default=30.0)

    # Identity: bearer token -> display name
    staff_tokens: dict[str, str] = Field(default_factory=lambda: {"staff-token": "Equipe de Manutenção"})
    admin_tokens: dict[str, str] = Field(default_factory=lambda: {"admin-token": "Administrador"})

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="maintenance-desk")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: str | None = Field(default=None)

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()
