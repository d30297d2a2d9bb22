from __future__ import annotations

import asyncio
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.errors import DatabaseUnavailableError


@dataclass(slots=True)
class DatabaseConnectionTester:
    """Utility providing explicit connection testing to the ticket database."""

    engine: AsyncEngine
    timeout: float = 5.0

    async def test_connection(self) -> bool:
        try:
            async with self.engine.connect() as connection:
                await asyncio.wait_for(connection.execute(text("SELECT 1")), timeout=self.timeout)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            raise DatabaseUnavailableError(f"Database is unreachable: {exc}") from exc
        return True

    async def close(self) -> None:
        await self.engine.dispose()
