from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import Community, CommunityMeeting, CommunityMember
from congregate.db.repos.base import BaseRepository


class CommunityRepository(BaseRepository[Community]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Community)

    async def get_by_id(self, community_id: uuid.UUID) -> Community | None:
        return await self.get(community_id)

    async def list_all(self) -> list[Community]:
        result = await self.session.execute(
            select(Community).order_by(func.lower(Community.name).asc(), Community.created_at.asc())
        )
        return list(result.scalars().all())

    async def member_counts(self) -> dict[uuid.UUID, int]:
        result = await self.session.execute(
            select(CommunityMember.community_id, func.count()).group_by(
                CommunityMember.community_id
            )
        )
        return {community_id: int(count) for community_id, count in result.all()}

    async def meeting_counts(self) -> dict[uuid.UUID, int]:
        result = await self.session.execute(
            select(CommunityMeeting.community_id, func.count()).group_by(
                CommunityMeeting.community_id
            )
        )
        return {community_id: int(count) for community_id, count in result.all()}
