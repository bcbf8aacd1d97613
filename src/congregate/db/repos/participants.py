from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import Participant
from congregate.db.repos.base import BaseRepository


class ParticipantRepository(BaseRepository[Participant]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Participant)

    async def get_by_id(self, participant_id: uuid.UUID) -> Participant | None:
        return await self.get(participant_id)
