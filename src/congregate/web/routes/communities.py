from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from congregate.db import get_session
from congregate.services import (
    create_community,
    delete_community,
    get_community,
    list_communities,
    update_community,
)
from congregate.web.schemas import (
    CommunityCreate,
    CommunityRead,
    CommunitySummaryRead,
    CommunityUpdate,
)

router = APIRouter(tags=["communities"])


@router.post("/communities", status_code=201)
async def create_community_route(
    payload: CommunityCreate,
    session: AsyncSession = Depends(get_session),
) -> CommunityRead:
    community = await create_community(session, payload.model_dump())
    return CommunityRead.model_validate(community)


@router.get("/communities")
async def list_communities_route(
    session: AsyncSession = Depends(get_session),
) -> list[CommunitySummaryRead]:
    return [
        CommunitySummaryRead(
            **CommunityRead.model_validate(summary.community).model_dump(),
            member_count=summary.member_count,
            meeting_count=summary.meeting_count,
        )
        for summary in await list_communities(session)
    ]


@router.get("/communities/{community_id}")
async def get_community_route(
    community_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> CommunityRead:
    return CommunityRead.model_validate(await get_community(session, community_id))


@router.patch("/communities/{community_id}")
async def update_community_route(
    community_id: uuid.UUID,
    payload: CommunityUpdate,
    session: AsyncSession = Depends(get_session),
) -> CommunityRead:
    community = await update_community(
        session, community_id, payload.model_dump(exclude_unset=True)
    )
    return CommunityRead.model_validate(community)


@router.delete("/communities/{community_id}", status_code=204)
async def delete_community_route(
    community_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> Response:
    await delete_community(session, community_id)
    return Response(status_code=204)
