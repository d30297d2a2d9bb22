from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.database import ensure_datetime
from packages.db.models import TechnicianTable

from .models import Technician


class TechnicianRepository:
    """Data access layer for the `technicians` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_technician(
        self,
        *,
        name: str,
        email: str | None,
        phone: str | None,
        specialty: str | None,
    ) -> Technician:
        now = datetime.now(timezone.utc)
        row = TechnicianTable(
            name=name,
            email=email,
            phone=phone,
            specialty=specialty,
            active=True,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return self._table_to_technician(row)

    async def get_technician(self, technician_id: int) -> Technician | None:
        async with self._session_factory() as session:
            row = await session.get(TechnicianTable, technician_id)
            if row is None:
                return None
            return self._table_to_technician(row)

    async def list_technicians(self, *, include_inactive: bool = False) -> list[Technician]:
        statement = select(TechnicianTable)
        if not include_inactive:
            statement = statement.where(TechnicianTable.active.is_(True))
        statement = statement.order_by(TechnicianTable.name.asc(), TechnicianTable.id.asc())
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_technician(row) for row in result.scalars().all()]

    async def update_technician(self, technician_id: int, changes: Mapping[str, Any]) -> Technician | None:
        async with self._session_factory() as session:
            row = await session.get(TechnicianTable, technician_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, field, value)
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(row)
            return self._table_to_technician(row)

    @staticmethod
    def _table_to_technician(row: TechnicianTable) -> Technician:
        if row.id is None:
            raise RuntimeError("Technician row has no primary key")
        return Technician(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            specialty=row.specialty,
            active=bool(row.active),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )
