from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.database import ensure_datetime
from packages.db.models import SettingTable


@dataclass(slots=True)
class Setting:
    id: int
    key: str
    value: str
    description: str | None
    updated_at: datetime


class SettingRepository:
    """Data access layer for the `settings` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_setting(self, key: str) -> Setting | None:
        async with self._session_factory() as session:
            row = await self._get_row(session, key)
            if row is None:
                return None
            return self._table_to_setting(row)

    async def get_values(self, keys: list[str]) -> dict[str, str]:
        async with self._session_factory() as session:
            result = await session.execute(select(SettingTable).where(SettingTable.key.in_(keys)))
            return {row.key: row.value for row in result.scalars().all()}

    async def list_settings(self) -> list[Setting]:
        async with self._session_factory() as session:
            result = await session.execute(select(SettingTable).order_by(SettingTable.key.asc()))
            return [self._table_to_setting(row) for row in result.scalars().all()]

    async def upsert_setting(self, key: str, value: str, description: str | None = None) -> Setting:
        try:
            return await self._upsert(key, value, description)
        except IntegrityError:
            # a concurrent insert of the same key won; update it instead
            return await self._upsert(key, value, description)

    async def _upsert(self, key: str, value: str, description: str | None) -> Setting:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            async with session.begin():
                row = await self._get_row(session, key)
                if row is None:
                    row = SettingTable(key=key, value=value, description=description, updated_at=now)
                    session.add(row)
                else:
                    row.value = value
                    if description is not None:
                        row.description = description
                    row.updated_at = now
            return self._table_to_setting(row)

    @staticmethod
    async def _get_row(session: AsyncSession, key: str) -> SettingTable | None:
        result = await session.execute(select(SettingTable).where(SettingTable.key == key).limit(1))
        return result.scalars().first()

    @staticmethod
    def _table_to_setting(row: SettingTable) -> Setting:
        if row.id is None:
            raise RuntimeError("Setting row has no primary key")
        return Setting(
            id=row.id,
            key=row.key,
            value=row.value,
            description=row.description,
            updated_at=ensure_datetime(row.updated_at),
        )
