from __future__ import annotations

from congregate.db.models import CommunityMeeting, CommunityMember
from congregate.recurrence import describe_recurrence
from congregate.services import MemberParticipation
from congregate.web.schemas import MeetingRead, MemberParticipationRead, MemberRead


def meeting_read(meeting: CommunityMeeting) -> MeetingRead:
    return MeetingRead(
        id=meeting.id,
        community_id=meeting.community_id,
        title=meeting.title,
        description=meeting.description,
        start_date=meeting.start_date,
        end_date=meeting.end_date,
        duration_minutes=meeting.duration_minutes,
        is_announcement=meeting.is_announcement,
        recurrence_frequency=meeting.recurrence_frequency,
        recurrence_interval=meeting.recurrence_interval,
        recurrence_day_of_week=meeting.recurrence_day_of_week,
        recurrence_day_of_month=meeting.recurrence_day_of_month,
        parent_meeting_id=meeting.parent_meeting_id,
        is_recurrence_template=meeting.is_recurrence_template,
        instance_date=meeting.instance_date,
        exception_type=meeting.exception_type,
        kind=meeting.kind,
        recurrence_label=describe_recurrence(
            frequency=meeting.recurrence_frequency,
            interval=meeting.recurrence_interval,
            day_of_week=meeting.recurrence_day_of_week,
            day_of_month=meeting.recurrence_day_of_month,
            start=meeting.start_date,
        ),
    )


def member_participation_read(participation: MemberParticipation) -> MemberParticipationRead:
    member = participation.member
    return MemberParticipationRead(
        id=member.id,
        participant_id=member.participant_id,
        first_name=member.participant.first_name,
        last_name=member.participant.last_name,
        state=member.state,
        notes=member.notes,
        joined_at=member.joined_at,
        attendance_rate=participation.attendance_rate,
        frequency=participation.frequency,
    )


def member_read(member: CommunityMember) -> MemberRead:
    return MemberRead(
        id=member.id,
        community_id=member.community_id,
        participant_id=member.participant_id,
        first_name=member.participant.first_name,
        last_name=member.participant.last_name,
        email=member.participant.email,
        state=member.state,
        notes=member.notes,
        joined_at=member.joined_at,
    )
