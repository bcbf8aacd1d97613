from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import (
    Community,
    CommunityAttendance,
    CommunityMeeting,
    CommunityMember,
    MemberState,
    Participant,
)
from congregate.db.repos import (
    CommunityAttendanceRepository,
    CommunityMeetingRepository,
    CommunityMemberRepository,
    CommunityRepository,
    ParticipantRepository,
)
from congregate.errors import NotFoundError, ValidationFailureError
from congregate.logging_config import log_with_fields

logger = logging.getLogger("congregate.communities")

COMMUNITY_FIELDS = frozenset({"name", "description", "city", "country"})
PARTICIPANT_FIELDS = frozenset({"first_name", "last_name", "email"})


@dataclass(frozen=True, slots=True)
class CommunitySummary:
    community: Community
    member_count: int
    meeting_count: int


def _clean_fields(
    data: Mapping[str, Any], allowed: frozenset[str], required: tuple[str, ...], label: str
) -> dict[str, Any]:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValidationFailureError(f"Unknown {label} fields: {', '.join(unknown)}")

    values = {k: v.strip() if isinstance(v, str) else v for k, v in data.items()}
    empty = sorted(name for name in required if name in values and not values[name])
    if empty:
        raise ValidationFailureError(f"Fields cannot be empty: {', '.join(empty)}")
    return values


def _parse_state(state: MemberState | str) -> MemberState:
    try:
        return MemberState(state)
    except ValueError as exc:
        raise ValidationFailureError(f"Invalid member state: {state!r}") from exc


async def get_community(session: AsyncSession, community_id: uuid.UUID) -> Community:
    community = await CommunityRepository(session).get_by_id(community_id)
    if community is None:
        raise NotFoundError("Community not found")
    return community


async def list_communities(session: AsyncSession) -> list[CommunitySummary]:
    repo = CommunityRepository(session)
    members = await repo.member_counts()
    meetings = await repo.meeting_counts()
    return [
        CommunitySummary(
            community=community,
            member_count=members.get(community.id, 0),
            meeting_count=meetings.get(community.id, 0),
        )
        for community in await repo.list_all()
    ]


async def create_community(session: AsyncSession, data: Mapping[str, Any]) -> Community:
    values = _clean_fields(data, COMMUNITY_FIELDS, ("name",), "community")
    if not values.get("name"):
        raise ValidationFailureError("Missing community fields: name")

    community = await CommunityRepository(session).add(Community(**values))
    await session.commit()

    log_with_fields(
        logger, logging.INFO, "community created", community_id=community.id, name=community.name
    )
    return community


async def update_community(
    session: AsyncSession, community_id: uuid.UUID, changes: Mapping[str, Any]
) -> Community:
    repo = CommunityRepository(session)
    community = await repo.get_by_id(community_id)
    if community is None:
        raise NotFoundError("Community not found")

    values = _clean_fields(changes, COMMUNITY_FIELDS, ("name",), "community")
    await repo.update_fields(community, values)
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "community updated",
        community_id=community_id,
        fields=",".join(sorted(values)),
    )
    return community


async def delete_community(session: AsyncSession, community_id: uuid.UUID) -> None:
    """Delete a community with its members, meetings and attendance.

    Participants are kept; they can belong to other communities.
    """

    communities = CommunityRepository(session)
    if await communities.get_by_id(community_id) is None:
        raise NotFoundError("Community not found")

    meetings = CommunityMeetingRepository(session)
    meeting_ids = await meetings.list_ids_for_community(community_id)
    await CommunityAttendanceRepository(session).delete_for_meetings(meeting_ids)
    await meetings.delete_where(CommunityMeeting.community_id == community_id)
    await CommunityMemberRepository(session).delete_where(
        CommunityMember.community_id == community_id
    )
    await communities.delete_where(Community.id == community_id)
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "community deleted",
        community_id=community_id,
        meetings=len(meeting_ids),
    )


async def _load_member(session: AsyncSession, member_id: uuid.UUID) -> CommunityMember:
    # Fresh row with the participant eagerly loaded for serialization.
    member = await CommunityMemberRepository(session).first_where(CommunityMember.id == member_id)
    if member is None:
        raise NotFoundError("Member not found")
    await session.refresh(member, attribute_names=["participant"])
    return member


async def add_member(
    session: AsyncSession, community_id: uuid.UUID, participant_id: uuid.UUID
) -> CommunityMember:
    """Add an existing participant; adding someone twice returns the existing membership."""

    await get_community(session, community_id)
    if await ParticipantRepository(session).get_by_id(participant_id) is None:
        raise NotFoundError("Participant not found")

    members = CommunityMemberRepository(session)
    existing = await members.get_for_participant(community_id, participant_id)
    if existing is not None:
        return await _load_member(session, existing.id)

    try:
        member = await members.add(
            CommunityMember(
                community_id=community_id,
                participant_id=participant_id,
                state=MemberState.active_member,
            )
        )
    except IntegrityError:
        # Added concurrently; the other request's row wins.
        await session.rollback()
        existing = await members.get_for_participant(community_id, participant_id)
        if existing is None:
            raise
        return await _load_member(session, existing.id)
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "member added",
        community_id=community_id,
        member_id=member.id,
        participant_id=participant_id,
    )
    return await _load_member(session, member.id)


async def create_community_member(
    session: AsyncSession, community_id: uuid.UUID, data: Mapping[str, Any]
) -> CommunityMember:
    """Register a new participant and make them an active member of the community."""

    await get_community(session, community_id)
    values = _clean_fields(data, PARTICIPANT_FIELDS, ("first_name", "last_name"), "participant")
    missing = [name for name in ("first_name", "last_name") if not values.get(name)]
    if missing:
        raise ValidationFailureError(f"Missing participant fields: {', '.join(missing)}")

    participant = await ParticipantRepository(session).add(Participant(**values))
    member = await CommunityMemberRepository(session).add(
        CommunityMember(
            community_id=community_id,
            participant_id=participant.id,
            state=MemberState.active_member,
        )
    )
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "member created",
        community_id=community_id,
        member_id=member.id,
        participant_id=participant.id,
    )
    return await _load_member(session, member.id)


async def _member_in_community(
    session: AsyncSession, community_id: uuid.UUID, member_id: uuid.UUID
) -> CommunityMember:
    member = await CommunityMemberRepository(session).get_in_community(member_id, community_id)
    if member is None:
        raise NotFoundError("Member not found")
    return member


async def update_member_state(
    session: AsyncSession,
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    state: MemberState | str,
) -> CommunityMember:
    new_state = _parse_state(state)
    member = await _member_in_community(session, community_id, member_id)
    previous = member.state

    await CommunityMemberRepository(session).update_fields(member, {"state": new_state})
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "member state changed",
        member_id=member_id,
        previous=previous,
        state=new_state,
    )
    return await _load_member(session, member_id)


async def update_member_notes(
    session: AsyncSession,
    community_id: uuid.UUID,
    member_id: uuid.UUID,
    notes: str | None,
) -> CommunityMember:
    member = await _member_in_community(session, community_id, member_id)
    cleaned = notes.strip() if notes is not None else None

    await CommunityMemberRepository(session).update_fields(member, {"notes": cleaned or None})
    await session.commit()
    return await _load_member(session, member_id)


async def remove_member(
    session: AsyncSession, community_id: uuid.UUID, member_id: uuid.UUID
) -> None:
    await _member_in_community(session, community_id, member_id)

    await CommunityAttendanceRepository(session).delete_where(
        CommunityAttendance.member_id == member_id
    )
    await CommunityMemberRepository(session).delete_where(CommunityMember.id == member_id)
    await session.commit()

    log_with_fields(
        logger, logging.INFO, "member removed", community_id=community_id, member_id=member_id
    )


async def get_member(
    session: AsyncSession, community_id: uuid.UUID, member_id: uuid.UUID
) -> CommunityMember:
    await _member_in_community(session, community_id, member_id)
    return await _load_member(session, member_id)


__all__ = [
    "COMMUNITY_FIELDS",
    "CommunitySummary",
    "add_member",
    "create_community",
    "create_community_member",
    "delete_community",
    "get_community",
    "get_member",
    "list_communities",
    "remove_member",
    "update_community",
    "update_member_notes",
    "update_member_state",
]
