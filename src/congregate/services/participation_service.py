from __future__ import annotations

import enum
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import CommunityMember, MemberState
from congregate.db.repos import (
    CommunityAttendanceRepository,
    CommunityMeetingRepository,
    CommunityMemberRepository,
)
from congregate.errors import NotFoundError
from congregate.recurrence import as_utc

DASHBOARD_RECENT_MEETINGS = 10

HIGH_THRESHOLD = 75.0
MEDIUM_THRESHOLD = 25.0


class ParticipationFrequency(enum.StrEnum):
    high = "high"
    medium = "medium"
    low = "low"
    none = "none"


@dataclass(frozen=True, slots=True)
class MemberParticipation:
    member: CommunityMember
    attendance_rate: float
    frequency: ParticipationFrequency


@dataclass(frozen=True, slots=True)
class DashboardStats:
    member_count: int
    meeting_count: int
    member_state_distribution: list[tuple[MemberState, int]]
    participation_frequency: list[tuple[ParticipationFrequency, int]]


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    meeting_id: uuid.UUID
    title: str
    start_date: datetime
    is_announcement: bool
    attended: bool | None
    notes: str | None


def attendance_rate(attended_count: int, meeting_count: int) -> float:
    if meeting_count == 0:
        return 0.0
    return attended_count * 100 / meeting_count


def frequency_bucket(rate: float) -> ParticipationFrequency:
    if rate >= HIGH_THRESHOLD:
        return ParticipationFrequency.high
    if rate >= MEDIUM_THRESHOLD:
        return ParticipationFrequency.medium
    if rate > 0:
        return ParticipationFrequency.low
    return ParticipationFrequency.none


async def member_attendance_rate(
    session: AsyncSession,
    member_id: uuid.UUID,
    meeting_ids: Sequence[uuid.UUID],
) -> float:
    """Percentage of ``meeting_ids`` the member is recorded as having attended."""

    if not meeting_ids:
        return 0.0
    attended = await CommunityAttendanceRepository(session).count_attended(member_id, meeting_ids)
    return attendance_rate(attended, len(meeting_ids))


async def _classify_members(
    session: AsyncSession,
    members: Sequence[CommunityMember],
    meeting_ids: Sequence[uuid.UUID],
) -> list[MemberParticipation]:
    attended_by_member = await CommunityAttendanceRepository(session).count_attended_by_member(
        meeting_ids
    )
    out: list[MemberParticipation] = []
    for member in members:
        rate = attendance_rate(attended_by_member.get(member.id, 0), len(meeting_ids))
        out.append(
            MemberParticipation(member=member, attendance_rate=rate, frequency=frequency_bucket(rate))
        )
    return out


async def list_members_with_participation(
    session: AsyncSession,
    community_id: uuid.UUID,
    *,
    state: MemberState | None = None,
) -> list[MemberParticipation]:
    """Members of a community with their attendance over every community meeting.

    Sorted by attendance rate (highest first); ties go to the most recently
    joined member.
    """

    members = await CommunityMemberRepository(session).list_for_community(community_id, state=state)
    meeting_ids = await CommunityMeetingRepository(session).list_ids_for_community(community_id)
    classified = await _classify_members(session, members, meeting_ids)
    classified.sort(
        key=lambda p: (p.attendance_rate, as_utc(p.member.joined_at)),
        reverse=True,
    )
    return classified


async def get_dashboard_stats(
    session: AsyncSession,
    community_id: uuid.UUID,
    *,
    recent_meetings: int = DASHBOARD_RECENT_MEETINGS,
) -> DashboardStats:
    members = await CommunityMemberRepository(session).list_for_community(community_id)
    by_state = await CommunityMemberRepository(session).count_by_state(community_id)

    # Participation only looks at the most recent non-announcement meetings.
    meeting_ids = await CommunityMeetingRepository(session).list_recent_ids(
        community_id, limit=recent_meetings
    )
    frequencies = {bucket: 0 for bucket in ParticipationFrequency}
    if meeting_ids:
        for participation in await _classify_members(session, members, meeting_ids):
            frequencies[participation.frequency] += 1
    else:
        frequencies[ParticipationFrequency.none] = len(members)

    return DashboardStats(
        member_count=len(members),
        meeting_count=len(meeting_ids),
        member_state_distribution=sorted(by_state.items(), key=lambda item: item[0].value),
        participation_frequency=list(frequencies.items()),
    )


async def get_member_timeline(
    session: AsyncSession,
    member_id: uuid.UUID,
    *,
    community_id: uuid.UUID | None = None,
) -> list[TimelineEntry]:
    members = CommunityMemberRepository(session)
    if community_id is None:
        member = await members.get_by_id(member_id)
    else:
        member = await members.get_in_community(member_id, community_id)
    if member is None:
        raise NotFoundError("Member not found")

    meetings = await CommunityMeetingRepository(session).list_for_community(member.community_id)
    rows = {
        row.meeting_id: row
        for row in await CommunityAttendanceRepository(session).list_for_member(member_id)
    }

    timeline: list[TimelineEntry] = []
    for meeting in meetings:
        row = rows.get(meeting.id)
        timeline.append(
            TimelineEntry(
                meeting_id=meeting.id,
                title=meeting.title,
                start_date=meeting.start_date,
                is_announcement=meeting.is_announcement,
                attended=row.attended if row is not None else None,
                notes=row.notes if row is not None else None,
            )
        )
    return timeline
