from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from congregate.db import get_session
from congregate.services import (
    MeetingScope,
    create_meeting,
    create_next_instance,
    delete_meeting,
    get_meeting,
    list_instances,
    list_meetings,
    update_meeting,
)
from congregate.settings import get_settings
from congregate.web.routes.common import meeting_read
from congregate.web.schemas import MeetingCreate, MeetingRead, MeetingUpdate

router = APIRouter(tags=["meetings"])


@router.post("/communities/{community_id}/meetings", status_code=201)
async def create_meeting_route(
    community_id: uuid.UUID,
    payload: MeetingCreate,
    session: AsyncSession = Depends(get_session),
) -> MeetingRead:
    meeting = await create_meeting(session, community_id, payload.model_dump())
    return meeting_read(meeting)


@router.get("/communities/{community_id}/meetings")
async def list_meetings_route(
    community_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> list[MeetingRead]:
    return [meeting_read(m) for m in await list_meetings(session, community_id)]


@router.get("/meetings/{meeting_id}")
async def get_meeting_route(
    meeting_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> MeetingRead:
    return meeting_read(await get_meeting(session, meeting_id))


@router.patch("/meetings/{meeting_id}")
async def update_meeting_route(
    meeting_id: uuid.UUID,
    payload: MeetingUpdate,
    scope: MeetingScope = Query(default=MeetingScope.this),
    session: AsyncSession = Depends(get_session),
) -> MeetingRead:
    meeting = await update_meeting(
        session, meeting_id, payload.model_dump(exclude_unset=True), scope
    )
    return meeting_read(meeting)


@router.delete("/meetings/{meeting_id}", status_code=204)
async def delete_meeting_route(
    meeting_id: uuid.UUID,
    scope: MeetingScope = Query(default=MeetingScope.this),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await delete_meeting(session, meeting_id, scope)
    return Response(status_code=204)


@router.post("/meetings/{meeting_id}/next-instance", status_code=201)
async def create_next_instance_route(
    meeting_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> MeetingRead:
    instance = await create_next_instance(
        session,
        meeting_id,
        max_instances=get_settings().max_instances_per_template,
    )
    return meeting_read(instance)


@router.get("/meetings/{meeting_id}/instances")
async def list_instances_route(
    meeting_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> list[MeetingRead]:
    return [meeting_read(m) for m in await list_instances(session, meeting_id)]
