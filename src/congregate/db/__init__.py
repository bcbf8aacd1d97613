from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from congregate.db import session as _session
from congregate.db.models import Base

create_engine = _session.create_engine
create_sessionmaker = _session.create_sessionmaker
engine = _session.engine

# NOTE: keep SessionMaker at the package level so tests can swap in a
# sessionmaker bound to a throwaway database.
SessionMaker: async_sessionmaker[AsyncSession] = _session.SessionMaker


async def get_session() -> AsyncIterator[AsyncSession]:
    async with SessionMaker() as session:
        yield session


async def create_all(bind: AsyncEngine | None = None) -> None:
    async with (bind if bind is not None else engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


__all__ = [
    "SessionMaker",
    "create_all",
    "create_engine",
    "create_sessionmaker",
    "engine",
    "get_session",
]
