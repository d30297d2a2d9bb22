import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.api.routes import ping, ratings, settings as settings_routes, technicians, tickets
from app.core.config import Settings, get_settings
from app.core.database import create_engine, create_schema, create_session_factory
from app.core.logging import configure_logging, init_tracer, shutdown_tracer
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.mailer import SmtpMailTransport
from app.ratings.repository import RatingRepository
from app.ratings.service import RatingService
from app.services.database import DatabaseConnectionTester
from app.storage.object_store import create_object_storage
from app.system_settings.repository import SettingRepository
from app.system_settings.service import SystemSettingsService
from app.technicians.repository import TechnicianRepository
from app.technicians.service import TechnicianService
from app.tickets.repository import TicketRepository
from app.tickets.service import TicketService
from app.tickets.state import TicketStateMachine

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, settings: Settings, engine: AsyncEngine) -> None:
    """Wire repositories and services onto ``app.state``."""

    session_factory = create_session_factory(engine)
    ticket_repository = TicketRepository(session_factory, engine=engine)
    technician_repository = TechnicianRepository(session_factory)

    settings_service = SystemSettingsService(SettingRepository(session_factory), defaults=settings)
    notifier = NotificationDispatcher(
        SmtpMailTransport(settings_service.mail_config),
        notification_address=settings_service.notification_address,
        public_base_url=settings.public_base_url,
    )

    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.database_tester = DatabaseConnectionTester(engine)
    app.state.settings_service = settings_service
    app.state.notifier = notifier
    app.state.technician_service = TechnicianService(technician_repository)
    app.state.ticket_service = TicketService(
        ticket_repository,
        technicians=technician_repository,
        notifier=notifier,
        storage=create_object_storage(settings),
        state_machine=TicketStateMachine(permissive=not settings.strict_status_transitions),
        max_number_attempts=settings.ticket_number_max_attempts,
        display_timezone=settings.display_timezone,
        send_rating_request_on_finalize=settings.send_rating_request_on_finalize,
    )
    app.state.rating_service = RatingService(
        RatingRepository(session_factory),
        tickets=ticket_repository,
        require_finalized=settings.require_finalized_for_rating,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app_logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = app_logger
    app.state.tracer_provider = tracer_provider
    engine: AsyncEngine | None = None
    try:
        engine = create_engine(settings)
        await create_schema(engine)
        build_services(app, settings, engine)
    except (SQLAlchemyError, OSError, ValueError):
        logger.exception("Service initialisation failed; API answers 503 until restarted")
        app.state.ticket_service = None
        if engine is not None:
            await engine.dispose()
            engine = None
    try:
        yield
    finally:
        if engine is not None:
            await engine.dispose()
        shutdown_tracer(tracer_provider)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Database is unavailable"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(ratings.router)
    app.include_router(technicians.router)
    app.include_router(settings_routes.router)
    if settings.storage_backend == "local" and settings.storage_public_url.startswith("/"):
        app.mount(
            settings.storage_public_url,
            StaticFiles(directory=settings.storage_dir, check_dir=False),
            name="uploads",
        )
    return app


app = create_app()
