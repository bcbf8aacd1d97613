from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from congregate.db import get_session
from congregate.db.models import MemberState
from congregate.services import (
    add_member,
    create_community_member,
    get_dashboard_stats,
    get_member,
    get_member_timeline,
    list_members_with_participation,
    remove_member,
    update_member_notes,
    update_member_state,
)
from congregate.settings import get_settings
from congregate.web.routes.common import member_participation_read, member_read
from congregate.web.schemas import (
    DashboardRead,
    FrequencyCount,
    MemberAdd,
    MemberCreate,
    MemberNotesUpdate,
    MemberParticipationRead,
    MemberRead,
    MemberStateUpdate,
    StateCount,
    TimelineEntryRead,
)

router = APIRouter(tags=["members"])


@router.get("/communities/{community_id}/members")
async def list_members_route(
    community_id: uuid.UUID,
    state: MemberState | None = None,
    session: AsyncSession = Depends(get_session),
) -> list[MemberParticipationRead]:
    members = await list_members_with_participation(session, community_id, state=state)
    return [member_participation_read(p) for p in members]


@router.post("/communities/{community_id}/members", status_code=201)
async def add_member_route(
    community_id: uuid.UUID,
    payload: MemberAdd,
    session: AsyncSession = Depends(get_session),
) -> MemberRead:
    return member_read(await add_member(session, community_id, payload.participant_id))


@router.post("/communities/{community_id}/members/create", status_code=201)
async def create_member_route(
    community_id: uuid.UUID,
    payload: MemberCreate,
    session: AsyncSession = Depends(get_session),
) -> MemberRead:
    member = await create_community_member(session, community_id, payload.model_dump())
    return member_read(member)


@router.get("/communities/{community_id}/members/{member_id}")
async def get_member_route(
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> MemberRead:
    return member_read(await get_member(session, community_id, member_id))


@router.put("/communities/{community_id}/members/{member_id}")
async def update_member_state_route(
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: MemberStateUpdate,
    session: AsyncSession = Depends(get_session),
) -> MemberRead:
    member = await update_member_state(session, community_id, member_id, payload.state)
    return member_read(member)


@router.patch("/communities/{community_id}/members/{member_id}/notes")
async def update_member_notes_route(
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: MemberNotesUpdate,
    session: AsyncSession = Depends(get_session),
) -> MemberRead:
    member = await update_member_notes(session, community_id, member_id, payload.notes)
    return member_read(member)


@router.delete("/communities/{community_id}/members/{member_id}", status_code=204)
async def remove_member_route(
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> Response:
    await remove_member(session, community_id, member_id)
    return Response(status_code=204)


@router.get("/communities/{community_id}/members/{member_id}/timeline")
async def member_timeline_route(
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> list[TimelineEntryRead]:
    timeline = await get_member_timeline(session, member_id, community_id=community_id)
    return [TimelineEntryRead.model_validate(entry) for entry in timeline]


@router.get("/communities/{community_id}/dashboard")
async def dashboard_route(
    community_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> DashboardRead:
    stats = await get_dashboard_stats(
        session,
        community_id,
        recent_meetings=get_settings().dashboard_recent_meetings,
    )
    return DashboardRead(
        member_count=stats.member_count,
        meeting_count=stats.meeting_count,
        member_state_distribution=[
            StateCount(state=state, count=count) for state, count in stats.member_state_distribution
        ],
        participation_frequency=[
            FrequencyCount(frequency=frequency, count=count)
            for frequency, count in stats.participation_frequency
        ],
    )
