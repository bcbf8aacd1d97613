from __future__ import annotations

import uuid
from collections.abc import Collection

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from congregate.db.models import CommunityAttendance, CommunityMember
from congregate.db.repos.base import BaseRepository


class CommunityAttendanceRepository(BaseRepository[CommunityAttendance]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, CommunityAttendance)

    async def list_for_meeting(self, meeting_id: uuid.UUID) -> list[CommunityAttendance]:
        result = await self.session.execute(
            select(CommunityAttendance)
            .options(
                selectinload(CommunityAttendance.member).selectinload(CommunityMember.participant)
            )
            .where(CommunityAttendance.meeting_id == meeting_id)
            .order_by(CommunityAttendance.recorded_at.asc())
        )
        return list(result.scalars().all())

    async def list_for_member(
        self, member_id: uuid.UUID, meeting_ids: Collection[uuid.UUID] | None = None
    ) -> list[CommunityAttendance]:
        stmt = select(CommunityAttendance).where(CommunityAttendance.member_id == member_id)
        if meeting_ids is not None:
            stmt = stmt.where(CommunityAttendance.meeting_id.in_(meeting_ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_member(
        self, meeting_id: uuid.UUID, member_id: uuid.UUID
    ) -> CommunityAttendance | None:
        return await self.first_where(
            CommunityAttendance.meeting_id == meeting_id,
            CommunityAttendance.member_id == member_id,
        )

    async def delete_for_meetings(self, meeting_ids: Collection[uuid.UUID]) -> int:
        if not meeting_ids:
            return 0
        return await self.delete_where(CommunityAttendance.meeting_id.in_(meeting_ids))

    async def count_attended(
        self, member_id: uuid.UUID, meeting_ids: Collection[uuid.UUID]
    ) -> int:
        if not meeting_ids:
            return 0
        return await self.count_where(
            CommunityAttendance.member_id == member_id,
            CommunityAttendance.meeting_id.in_(meeting_ids),
            CommunityAttendance.attended.is_(True),
        )

    async def count_attended_by_member(
        self, meeting_ids: Collection[uuid.UUID]
    ) -> dict[uuid.UUID, int]:
        if not meeting_ids:
            return {}
        result = await self.session.execute(
            select(CommunityAttendance.member_id, func.count())
            .where(
                CommunityAttendance.meeting_id.in_(meeting_ids),
                CommunityAttendance.attended.is_(True),
            )
            .group_by(CommunityAttendance.member_id)
        )
        return {member_id: int(count) for member_id, count in result.all()}
