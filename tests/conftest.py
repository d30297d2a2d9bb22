from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import create_schema
from app.notifications.dispatcher import NotificationDispatcher
from app.ratings.repository import RatingRepository
from app.ratings.service import RatingService
from app.storage.object_store import StorageError, StoredObject
from app.technicians.repository import TechnicianRepository
from app.technicians.service import TechnicianService
from app.tickets.repository import TicketRepository
from app.tickets.service import TicketService
from app.tickets.state import TicketStateMachine

NOTIFICATION_ADDRESS = "manutencao@sesc.org.br"


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingMailTransport:
    def __init__(self, *, result: bool = True) -> None:
        self.result = result
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        self.sent.append((to, subject, html_body))
        return self.result

    def recipients(self) -> list[str]:
        return [to for to, _, _ in self.sent]

    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.sent]


class RecordingStorage:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.objects: dict[str, tuple[bytes, str]] = {}

    async def put(self, key: str, data: bytes, mime_type: str) -> StoredObject:
        if self.fail:
            raise StorageError("storage offline")
        self.objects[key] = (data, mime_type)
        return StoredObject(url=f"https://files.sesc.org.br/{key}", key=key)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def notification_address() -> str:
    return NOTIFICATION_ADDRESS


@pytest.fixture
def mail_transport() -> RecordingMailTransport:
    return RecordingMailTransport()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    await create_schema(engine)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def ticket_repository(session_factory: async_sessionmaker, engine: AsyncEngine) -> TicketRepository:
    return TicketRepository(session_factory, engine=engine)


@pytest.fixture
def technician_repository(session_factory: async_sessionmaker) -> TechnicianRepository:
    return TechnicianRepository(session_factory)


@pytest.fixture
def technician_service(technician_repository: TechnicianRepository) -> TechnicianService:
    return TechnicianService(technician_repository)


@pytest.fixture
def notifier(mail_transport: RecordingMailTransport, notification_address: str) -> NotificationDispatcher:
    async def resolve_address() -> str:
        return notification_address

    return NotificationDispatcher(
        mail_transport,
        notification_address=resolve_address,
        public_base_url="https://manutencao.sesc.org.br/",
    )


@pytest.fixture
def make_ticket_service(
    ticket_repository: TicketRepository,
    technician_repository: TechnicianRepository,
    notifier: NotificationDispatcher,
    storage: RecordingStorage,
    clock: FixedClock,
):
    def factory(**overrides) -> TicketService:
        options = {
            "technicians": technician_repository,
            "notifier": notifier,
            "storage": storage,
            "state_machine": TicketStateMachine(),
            "clock": clock,
            "display_timezone": "America/Sao_Paulo",
        }
        options.update(overrides)
        return TicketService(ticket_repository, **options)

    return factory


@pytest.fixture
def ticket_service(make_ticket_service) -> TicketService:
    return make_ticket_service()


@pytest.fixture
def rating_service(
    session_factory: async_sessionmaker,
    ticket_repository: TicketRepository,
    clock: FixedClock,
) -> RatingService:
    return RatingService(RatingRepository(session_factory), tickets=ticket_repository, clock=clock)


@pytest.fixture
def submission_payload() -> dict:
    return {
        "requester_name": "Maria Souza",
        "requester_email": "maria.souza@sesc.org.br",
        "location": "Bloco B, sala 12",
        "problem_type": "eletrica",
        "description": "Tomada sem energia desde ontem",
        "urgency": "alta",
    }
