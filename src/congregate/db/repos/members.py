from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from congregate.db.models import CommunityMember, MemberState
from congregate.db.repos.base import BaseRepository


class CommunityMemberRepository(BaseRepository[CommunityMember]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, CommunityMember)

    async def get_by_id(self, member_id: uuid.UUID) -> CommunityMember | None:
        return await self.get(member_id)

    async def get_in_community(
        self, member_id: uuid.UUID, community_id: uuid.UUID
    ) -> CommunityMember | None:
        return await self.first_where(
            CommunityMember.id == member_id,
            CommunityMember.community_id == community_id,
        )

    async def get_for_participant(
        self, community_id: uuid.UUID, participant_id: uuid.UUID
    ) -> CommunityMember | None:
        return await self.first_where(
            CommunityMember.community_id == community_id,
            CommunityMember.participant_id == participant_id,
        )

    async def list_for_community(
        self,
        community_id: uuid.UUID,
        *,
        state: MemberState | None = None,
        oldest_first: bool = False,
    ) -> list[CommunityMember]:
        order = CommunityMember.joined_at.asc() if oldest_first else CommunityMember.joined_at.desc()
        stmt = (
            select(CommunityMember)
            .options(selectinload(CommunityMember.participant))
            .where(CommunityMember.community_id == community_id)
            .order_by(order)
        )
        if state is not None:
            stmt = stmt.where(CommunityMember.state == state)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def ids_in_community(
        self, community_id: uuid.UUID, member_ids: set[uuid.UUID]
    ) -> set[uuid.UUID]:
        if not member_ids:
            return set()
        result = await self.session.execute(
            select(CommunityMember.id).where(
                CommunityMember.community_id == community_id,
                CommunityMember.id.in_(member_ids),
            )
        )
        return set(result.scalars().all())

    async def count_by_state(self, community_id: uuid.UUID) -> dict[MemberState, int]:
        result = await self.session.execute(
            select(CommunityMember.state, func.count())
            .where(CommunityMember.community_id == community_id)
            .group_by(CommunityMember.state)
        )
        return {state: int(count) for state, count in result.all()}
