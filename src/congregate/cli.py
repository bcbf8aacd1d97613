from __future__ import annotations

import argparse
import asyncio
import uuid

import uvicorn

import congregate.db as db
from congregate.errors import CongregateError
from congregate.recurrence import describe_recurrence
from congregate.services import create_next_instance
from congregate.settings import get_settings


async def _init_db() -> None:
    await db.create_all()


async def _next_instance(meeting_id: uuid.UUID) -> None:
    async with db.SessionMaker() as session:
        instance = await create_next_instance(
            session,
            meeting_id,
            max_instances=get_settings().max_instances_per_template,
        )

    label = describe_recurrence(
        frequency=instance.recurrence_frequency,
        interval=instance.recurrence_interval,
        day_of_week=instance.recurrence_day_of_week,
        day_of_month=instance.recurrence_day_of_month,
        start=instance.start_date,
    )
    print(f"Created {instance.id} on {instance.start_date.isoformat()} ({label})")


def main() -> None:
    parser = argparse.ArgumentParser(prog="congregate")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db")
    next_instance = sub.add_parser("next-instance")
    next_instance.add_argument("meeting_id", type=uuid.UUID)
    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    if args.cmd == "init-db":
        asyncio.run(_init_db())
    elif args.cmd == "next-instance":
        try:
            asyncio.run(_next_instance(args.meeting_id))
        except CongregateError as exc:
            raise SystemExit(f"error: {exc}") from exc
    elif args.cmd == "serve":
        uvicorn.run("congregate.app:app", host=args.host, port=args.port)
    else:
        raise SystemExit(2)
