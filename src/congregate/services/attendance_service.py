from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import CommunityAttendance, MemberState
from congregate.db.repos import (
    CommunityAttendanceRepository,
    CommunityMeetingRepository,
    CommunityMemberRepository,
    CommunityRepository,
)
from congregate.errors import NotFoundError, ValidationFailureError
from congregate.logging_config import log_with_fields

logger = logging.getLogger("congregate.attendance")

# Public listings cannot tell "never recorded" from "marked absent": both read as False.
ATTENDANCE_DEFAULT = False


@dataclass(frozen=True, slots=True)
class AttendanceRecord:
    member_id: uuid.UUID
    attended: bool
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class PublicAttendanceEntry:
    member_id: uuid.UUID
    first_name: str
    last_name: str
    state: MemberState
    joined_at: datetime
    attended: bool


@dataclass(frozen=True, slots=True)
class PublicAttendance:
    community_id: uuid.UUID
    community_name: str
    meeting_id: uuid.UUID
    meeting_title: str
    meeting_start_date: datetime
    members: list[PublicAttendanceEntry]


async def record_attendance(
    session: AsyncSession,
    meeting_id: uuid.UUID,
    records: Sequence[AttendanceRecord],
    *,
    now: datetime | None = None,
) -> list[CommunityAttendance]:
    """Replace the attendance of ``meeting_id`` with exactly ``records``.

    Members left out of ``records`` lose whatever was recorded for them
    before. The delete and the inserts are committed together.
    """

    meeting = await CommunityMeetingRepository(session).get_by_id(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")

    member_ids = [record.member_id for record in records]
    if len(set(member_ids)) != len(member_ids):
        raise ValidationFailureError("Each member may appear only once per meeting")

    known = await CommunityMemberRepository(session).ids_in_community(
        meeting.community_id, set(member_ids)
    )
    if len(known) != len(member_ids):
        raise NotFoundError("Member not found")

    recorded_at = now if now is not None else datetime.now(UTC)
    attendance = CommunityAttendanceRepository(session)
    await attendance.delete_for_meetings([meeting_id])
    rows = await attendance.add_all(
        [
            CommunityAttendance(
                meeting_id=meeting_id,
                member_id=record.member_id,
                attended=record.attended,
                notes=record.notes,
                recorded_at=recorded_at,
            )
            for record in records
        ]
    )
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "attendance recorded",
        meeting_id=meeting_id,
        records=len(rows),
        attended=sum(1 for row in rows if row.attended),
    )
    return rows


async def _upsert(
    attendance: CommunityAttendanceRepository,
    *,
    meeting_id: uuid.UUID,
    member_id: uuid.UUID,
    attended: bool,
    recorded_at: datetime,
) -> CommunityAttendance:
    row = await attendance.get_for_member(meeting_id, member_id)
    if row is None:
        return await attendance.add(
            CommunityAttendance(
                meeting_id=meeting_id,
                member_id=member_id,
                attended=attended,
                recorded_at=recorded_at,
            )
        )
    return await attendance.update_fields(row, {"attended": attended, "recorded_at": recorded_at})


async def record_single_attendance(
    session: AsyncSession,
    community_id: uuid.UUID,
    meeting_id: uuid.UUID,
    member_id: uuid.UUID,
    attended: bool,
    *,
    now: datetime | None = None,
) -> CommunityAttendance:
    if await CommunityMemberRepository(session).get_in_community(member_id, community_id) is None:
        raise NotFoundError("Member not found")
    if await CommunityMeetingRepository(session).get_in_community(meeting_id, community_id) is None:
        raise NotFoundError("Meeting not found")

    recorded_at = now if now is not None else datetime.now(UTC)
    attendance = CommunityAttendanceRepository(session)
    try:
        row = await _upsert(
            attendance,
            meeting_id=meeting_id,
            member_id=member_id,
            attended=attended,
            recorded_at=recorded_at,
        )
    except IntegrityError:
        # Another request inserted the row first; update it instead.
        await session.rollback()
        row = await _upsert(
            attendance,
            meeting_id=meeting_id,
            member_id=member_id,
            attended=attended,
            recorded_at=recorded_at,
        )
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "attendance updated",
        meeting_id=meeting_id,
        member_id=member_id,
        attended=attended,
    )
    return row


async def get_attendance(
    session: AsyncSession, meeting_id: uuid.UUID
) -> list[CommunityAttendance]:
    if await CommunityMeetingRepository(session).get_by_id(meeting_id) is None:
        raise NotFoundError("Meeting not found")
    return await CommunityAttendanceRepository(session).list_for_meeting(meeting_id)


async def get_public_attendance(
    session: AsyncSession,
    community_id: uuid.UUID,
    meeting_id: uuid.UUID,
) -> PublicAttendance:
    community = await CommunityRepository(session).get_by_id(community_id)
    if community is None:
        raise NotFoundError("Community not found")
    meeting = await CommunityMeetingRepository(session).get_in_community(meeting_id, community_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")

    members = await CommunityMemberRepository(session).list_for_community(
        community_id, oldest_first=True
    )
    recorded = {
        row.member_id: row.attended
        for row in await CommunityAttendanceRepository(session).list_for_meeting(meeting_id)
    }

    return PublicAttendance(
        community_id=community.id,
        community_name=community.name,
        meeting_id=meeting.id,
        meeting_title=meeting.title,
        meeting_start_date=meeting.start_date,
        members=[
            PublicAttendanceEntry(
                member_id=member.id,
                first_name=member.participant.first_name,
                last_name=member.participant.last_name,
                state=member.state,
                joined_at=member.joined_at,
                attended=recorded.get(member.id, ATTENDANCE_DEFAULT),
            )
            for member in members
        ],
    )
