"""Logging and OpenTelemetry setup for the maintenance desk."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.core.config import Settings

# Libraries that log every statement or request at INFO.
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")

_tracer_provider: TracerProvider | None = None


def otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` as used by ``OTEL_EXPORTER_OTLP_HEADERS``."""

    if not raw:
        return {}
    pairs = (item.partition("=") for item in raw.split(","))
    return {key.strip(): value.strip() for key, sep, value in pairs if sep and key.strip()}


def configure_logging(settings: Settings) -> logging.Logger:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"desk": {"format": settings.log_format}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "desk",
                    "level": level,
                }
            },
            "loggers": {
                "app": {"level": level},
                **{name: {"level": max(level, logging.WARNING)} for name in NOISY_LOGGERS},
            },
            "root": {"handlers": ["console"], "level": level},
        }
    )
    return logging.getLogger("app")


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP/HTTP exporting tracer provider when tracing is enabled.

    Spans are opened around ticket creation, status changes and mail delivery;
    without a provider they are no-ops.
    """

    global _tracer_provider

    if not settings.otel_enabled:
        return None
    if _tracer_provider is not None:
        return _tracer_provider

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=otlp_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    global _tracer_provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _tracer_provider:
        _tracer_provider = None
