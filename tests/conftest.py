from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

import congregate.db as db
from congregate.app import create_app
from congregate.db.models import Community
from congregate.testing.factories import create_community


@pytest.fixture
async def test_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    db_path = tmp_path / "test.db"
    engine = db.create_engine(f"sqlite+aiosqlite:///{db_path}")

    await db.create_all(engine)

    db.SessionMaker = db.create_sessionmaker(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
async def client(test_engine: AsyncEngine) -> AsyncIterator[AsyncClient]:
    _ = test_engine
    app = create_app()
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    _ = test_engine
    async with db.SessionMaker() as session:
        yield session


@pytest.fixture
async def community(db_session: AsyncSession) -> Community:
    return await create_community(db_session, name="Emaús Centro")
