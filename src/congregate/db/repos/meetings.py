from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import CommunityMeeting
from congregate.db.repos.base import BaseRepository


class CommunityMeetingRepository(BaseRepository[CommunityMeeting]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, CommunityMeeting)

    async def get_by_id(self, meeting_id: uuid.UUID) -> CommunityMeeting | None:
        return await self.get(meeting_id)

    async def get_in_community(
        self, meeting_id: uuid.UUID, community_id: uuid.UUID
    ) -> CommunityMeeting | None:
        return await self.first_where(
            CommunityMeeting.id == meeting_id,
            CommunityMeeting.community_id == community_id,
        )

    async def list_for_community(self, community_id: uuid.UUID) -> list[CommunityMeeting]:
        result = await self.session.execute(
            select(CommunityMeeting)
            .where(CommunityMeeting.community_id == community_id)
            .order_by(CommunityMeeting.start_date.desc())
        )
        return list(result.scalars().all())

    async def list_recent_ids(
        self,
        community_id: uuid.UUID,
        *,
        limit: int,
        include_announcements: bool = False,
    ) -> list[uuid.UUID]:
        stmt = (
            select(CommunityMeeting.id)
            .where(CommunityMeeting.community_id == community_id)
            .order_by(CommunityMeeting.start_date.desc())
            .limit(limit)
        )
        if not include_announcements:
            stmt = stmt.where(CommunityMeeting.is_announcement.is_(False))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_ids_for_community(self, community_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self.session.execute(
            select(CommunityMeeting.id).where(CommunityMeeting.community_id == community_id)
        )
        return list(result.scalars().all())

    async def list_instances(self, parent_meeting_id: uuid.UUID) -> list[CommunityMeeting]:
        result = await self.session.execute(
            select(CommunityMeeting)
            .where(CommunityMeeting.parent_meeting_id == parent_meeting_id)
            .order_by(CommunityMeeting.start_date.asc())
        )
        return list(result.scalars().all())

    async def count_instances(self, parent_meeting_id: uuid.UUID) -> int:
        return await self.count_where(CommunityMeeting.parent_meeting_id == parent_meeting_id)

    async def get_instance(
        self,
        *,
        community_id: uuid.UUID,
        parent_meeting_id: uuid.UUID,
        start_date: datetime,
    ) -> CommunityMeeting | None:
        return await self.first_where(
            CommunityMeeting.community_id == community_id,
            CommunityMeeting.parent_meeting_id == parent_meeting_id,
            CommunityMeeting.start_date == start_date,
        )

    async def detach_instances(self, parent_meeting_id: uuid.UUID) -> None:
        await self.session.execute(
            update(CommunityMeeting)
            .where(CommunityMeeting.parent_meeting_id == parent_meeting_id)
            .values(parent_meeting_id=None)
        )

    async def descendant_ids(self, meeting_id: uuid.UUID) -> list[uuid.UUID]:
        """Ids of every meeting generated from ``meeting_id``, following the chain."""

        found: list[uuid.UUID] = []
        frontier = [meeting_id]
        while frontier:
            result = await self.session.execute(
                select(CommunityMeeting.id).where(CommunityMeeting.parent_meeting_id.in_(frontier))
            )
            frontier = [i for i in result.scalars().all() if i not in found]
            found.extend(frontier)
        return found
