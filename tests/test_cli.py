from __future__ import annotations

import asyncio
import sys
import uuid
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

import congregate.db as db
from congregate import cli
from congregate.services import create_meeting
from congregate.testing.factories import create_community


@pytest.fixture
def cli_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncEngine:
    # Every asyncio.run() gets a fresh loop, so no connection may outlive one.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}", poolclass=NullPool)
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(db, "SessionMaker", db.create_sessionmaker(engine))
    return engine


def _run_cli(monkeypatch: pytest.MonkeyPatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["congregate", *args])
    cli.main()


async def _seed_template() -> uuid.UUID:
    await db.create_all()
    async with db.SessionMaker() as session:
        community = await create_community(session)
        template = await create_meeting(
            session,
            community.id,
            {
                "title": "Weekly gathering",
                "start_date": datetime(2100, 1, 4, 10, 0, tzinfo=UTC),
                "duration_minutes": 90,
                "recurrence_frequency": "weekly",
                "recurrence_day_of_week": "monday",
            },
        )
        return template.id


async def _table_names(engine: AsyncEngine) -> set[str]:
    async with engine.connect() as conn:
        return set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))


def test_init_db_creates_tables(
    cli_engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    _run_cli(monkeypatch, "init-db")

    tables = asyncio.run(_table_names(cli_engine))
    assert {"community", "community_meeting", "community_member"} <= tables


def test_next_instance_prints_created_occurrence(
    cli_engine: AsyncEngine,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _ = cli_engine
    template_id = asyncio.run(_seed_template())

    _run_cli(monkeypatch, "next-instance", str(template_id))

    out = capsys.readouterr().out
    assert out.startswith("Created ")
    assert "on 2100-01-11T10:00:00" in out
    assert out.rstrip().endswith("(Weekly on Monday at 10:00)")


def test_next_instance_reports_domain_errors(
    cli_engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    _ = cli_engine
    asyncio.run(db.create_all())

    with pytest.raises(SystemExit) as exc:
        _run_cli(monkeypatch, "next-instance", str(uuid.uuid4()))

    assert exc.value.code == "error: Meeting not found"


def test_next_instance_rejects_malformed_id(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(SystemExit) as exc:
        _run_cli(monkeypatch, "next-instance", "not-a-uuid")

    assert exc.value.code == 2
