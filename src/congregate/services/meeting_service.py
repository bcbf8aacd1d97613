from __future__ import annotations

import enum
import logging
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import CommunityMeeting
from congregate.db.repos import (
    CommunityAttendanceRepository,
    CommunityMeetingRepository,
    CommunityRepository,
)
from congregate.errors import (
    InvalidStateError,
    NotFoundError,
    TemporalConstraintError,
    ValidationFailureError,
)
from congregate.logging_config import log_with_fields
from congregate.recurrence import (
    as_utc,
    next_occurrence,
    normalize_day_of_week,
    parse_frequency,
    validate_recurrence,
)

logger = logging.getLogger("congregate.meetings")

# One year of weekly meetings.
MAX_INSTANCES_PER_TEMPLATE = 52

RECURRENCE_FIELDS = (
    "recurrence_frequency",
    "recurrence_interval",
    "recurrence_day_of_week",
    "recurrence_day_of_month",
)

EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "start_date",
        "end_date",
        "duration_minutes",
        "is_announcement",
        "exception_type",
        *RECURRENCE_FIELDS,
    }
)

_REQUIRED_ON_CREATE = ("title", "start_date", "duration_minutes")
_NOT_NULL_FIELDS = (*_REQUIRED_ON_CREATE, "is_announcement")
_DATETIME_FIELDS = ("start_date", "end_date")

DUPLICATE_INSTANCE_MESSAGE = "An instance already exists for this date"


class MeetingScope(enum.StrEnum):
    this = "this"
    all = "all"
    all_future = "all_future"


def _parse_scope(scope: MeetingScope | str) -> MeetingScope:
    try:
        return MeetingScope(scope)
    except ValueError as exc:
        raise ValidationFailureError(f"Invalid scope: {scope!r}") from exc


def _clean_meeting_values(data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(data) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationFailureError(f"Unknown meeting fields: {', '.join(unknown)}")

    cleared = sorted(name for name in _NOT_NULL_FIELDS if name in data and data[name] is None)
    if cleared:
        raise ValidationFailureError(f"Fields cannot be empty: {', '.join(cleared)}")

    values = dict(data)
    try:
        if "recurrence_frequency" in values:
            values["recurrence_frequency"] = parse_frequency(values["recurrence_frequency"])
        if "recurrence_day_of_week" in values:
            values["recurrence_day_of_week"] = normalize_day_of_week(
                values["recurrence_day_of_week"]
            )
    except ValueError as exc:
        raise ValidationFailureError(str(exc)) from exc

    # Stored columns keep wall-clock time only, so persist instants in UTC.
    for name in _DATETIME_FIELDS:
        if values.get(name) is not None:
            values[name] = as_utc(values[name])

    duration = values.get("duration_minutes")
    if duration is not None and duration <= 0:
        raise ValidationFailureError("duration_minutes must be positive")
    return values


def _check_recurrence(values: Mapping[str, Any]) -> None:
    try:
        validate_recurrence(
            frequency=values.get("recurrence_frequency"),
            interval=values.get("recurrence_interval"),
            day_of_week=values.get("recurrence_day_of_week"),
            day_of_month=values.get("recurrence_day_of_month"),
        )
    except ValueError as exc:
        raise ValidationFailureError(str(exc)) from exc


async def get_meeting(session: AsyncSession, meeting_id: uuid.UUID) -> CommunityMeeting:
    meeting = await CommunityMeetingRepository(session).get_by_id(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")
    return meeting


async def list_meetings(session: AsyncSession, community_id: uuid.UUID) -> list[CommunityMeeting]:
    return await CommunityMeetingRepository(session).list_for_community(community_id)


async def list_instances(session: AsyncSession, template_id: uuid.UUID) -> list[CommunityMeeting]:
    await get_meeting(session, template_id)
    return await CommunityMeetingRepository(session).list_instances(template_id)


async def create_meeting(
    session: AsyncSession,
    community_id: uuid.UUID,
    data: Mapping[str, Any],
) -> CommunityMeeting:
    """Create a standalone meeting, or a recurrence template when a frequency is given."""

    if await CommunityRepository(session).get_by_id(community_id) is None:
        raise NotFoundError("Community not found")

    values = _clean_meeting_values(data)
    missing = [name for name in _REQUIRED_ON_CREATE if values.get(name) is None]
    if missing:
        raise ValidationFailureError(f"Missing meeting fields: {', '.join(missing)}")
    _check_recurrence(values)

    is_template = bool(values.get("recurrence_frequency"))
    if is_template and values.get("recurrence_interval") is None:
        values["recurrence_interval"] = 1

    meeting = CommunityMeeting(
        community_id=community_id,
        is_recurrence_template=is_template,
        **values,
    )
    await CommunityMeetingRepository(session).add(meeting)
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "meeting created",
        meeting_id=meeting.id,
        community_id=community_id,
        kind=meeting.kind,
    )
    return meeting


async def update_meeting(
    session: AsyncSession,
    meeting_id: uuid.UUID,
    changes: Mapping[str, Any],
    scope: MeetingScope | str = MeetingScope.this,
) -> CommunityMeeting:
    scope = _parse_scope(scope)
    repo = CommunityMeetingRepository(session)
    meeting = await repo.get_by_id(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")

    values = _clean_meeting_values(changes)
    if "recurrence_frequency" in values:
        # Turning recurrence on or off reclassifies the row.
        values["is_recurrence_template"] = bool(values["recurrence_frequency"])
        if values["recurrence_frequency"] is None:
            for name in RECURRENCE_FIELDS:
                values[name] = None

    merged = {name: getattr(meeting, name) for name in RECURRENCE_FIELDS}
    merged.update({k: v for k, v in values.items() if k in RECURRENCE_FIELDS})
    _check_recurrence(merged)

    if not meeting.is_recurrence_template or scope is MeetingScope.this:
        target = "occurrence"
    else:
        # "all" and "all_future" both rewrite the template row only; instances
        # already generated keep the values they were created with.
        target = "series"

    try:
        await repo.update_fields(meeting, values)
    except IntegrityError as exc:
        # Moved onto the start date of a sibling instance.
        await session.rollback()
        raise TemporalConstraintError(DUPLICATE_INSTANCE_MESSAGE) from exc
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "meeting updated",
        meeting_id=meeting_id,
        scope=scope,
        target=target,
        fields=",".join(sorted(values)),
    )
    return meeting


async def delete_meeting(
    session: AsyncSession,
    meeting_id: uuid.UUID,
    scope: MeetingScope | str = MeetingScope.this,
) -> None:
    """Delete a meeting.

    ``this`` removes the meeting and its attendance; instances generated from
    it are detached and keep their own recurrence. For recurrence templates,
    ``all`` also removes every generated instance with its attendance, and
    ``all_future`` deletes nothing but turns the template into a standalone
    meeting so no further occurrences can be generated.
    """

    scope = _parse_scope(scope)
    meetings = CommunityMeetingRepository(session)
    attendance = CommunityAttendanceRepository(session)

    meeting = await meetings.get_by_id(meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting not found")

    if not meeting.is_recurrence_template or scope is MeetingScope.this:
        await attendance.delete_for_meetings([meeting_id])
        await meetings.detach_instances(meeting_id)
        await meetings.delete_where(CommunityMeeting.id == meeting_id)
        await session.commit()
        log_with_fields(logger, logging.INFO, "meeting deleted", meeting_id=meeting_id)
        return

    if scope is MeetingScope.all:
        instance_ids = await meetings.descendant_ids(meeting_id)
        await attendance.delete_for_meetings([meeting_id, *instance_ids])
        if instance_ids:
            await meetings.delete_where(CommunityMeeting.id.in_(instance_ids))
        await meetings.delete_where(CommunityMeeting.id == meeting_id)
        await session.commit()
        log_with_fields(
            logger,
            logging.INFO,
            "meeting series deleted",
            meeting_id=meeting_id,
            instances=len(instance_ids),
        )
        return

    stop_recurrence: dict[str, Any] = {name: None for name in RECURRENCE_FIELDS}
    stop_recurrence["is_recurrence_template"] = False
    await meetings.update_fields(meeting, stop_recurrence)
    await session.commit()
    log_with_fields(logger, logging.INFO, "meeting recurrence stopped", meeting_id=meeting_id)


async def create_next_instance(
    session: AsyncSession,
    template_id: uuid.UUID,
    *,
    now: datetime | None = None,
    max_instances: int = MAX_INSTANCES_PER_TEMPLATE,
) -> CommunityMeeting:
    """Materialize the occurrence that follows ``template_id``.

    Instances copy the template's recurrence so each one can produce the
    next; only one occurrence is generated per call.
    """

    repo = CommunityMeetingRepository(session)
    template = await repo.get_by_id(template_id)
    if template is None:
        raise NotFoundError("Meeting not found")
    if not template.is_recurrence_template:
        raise InvalidStateError("Meeting is not a recurrence template")

    # Stored values are UTC; reloaded rows come back naive.
    current_start = as_utc(template.start_date)
    try:
        next_start = next_occurrence(
            current_start,
            template.recurrence_frequency,
            template.recurrence_interval,
            template.recurrence_day_of_week,
            template.recurrence_day_of_month,
        )
    except ValueError as exc:
        raise ValidationFailureError(f"Failed to calculate next occurrence: {exc}") from exc
    if next_start is None:
        raise ValidationFailureError("Failed to calculate next occurrence date")

    current = now if now is not None else datetime.now(UTC)
    if next_start <= as_utc(current):
        raise TemporalConstraintError("Next occurrence must be in the future")

    existing = await repo.get_instance(
        community_id=template.community_id,
        parent_meeting_id=template.id,
        start_date=next_start,
    )
    if existing is not None:
        raise TemporalConstraintError(DUPLICATE_INSTANCE_MESSAGE)

    if await repo.count_instances(template.id) >= max_instances:
        raise TemporalConstraintError(f"Maximum number of instances reached ({max_instances})")

    end_date = None
    if template.end_date is not None:
        end_date = next_start + (as_utc(template.end_date) - current_start)

    instance = CommunityMeeting(
        community_id=template.community_id,
        title=template.title,
        description=template.description,
        start_date=next_start,
        end_date=end_date,
        duration_minutes=template.duration_minutes,
        is_announcement=template.is_announcement,
        recurrence_frequency=template.recurrence_frequency,
        recurrence_interval=template.recurrence_interval,
        recurrence_day_of_week=template.recurrence_day_of_week,
        recurrence_day_of_month=template.recurrence_day_of_month,
        parent_meeting_id=template.id,
        is_recurrence_template=True,
        instance_date=next_start.date(),
    )
    try:
        await repo.add(instance)
    except IntegrityError as exc:
        # A concurrent call won the (parent_meeting_id, start_date) race.
        await session.rollback()
        raise TemporalConstraintError(DUPLICATE_INSTANCE_MESSAGE) from exc
    await session.commit()

    log_with_fields(
        logger,
        logging.INFO,
        "meeting instance created",
        meeting_id=instance.id,
        parent_meeting_id=template.id,
        start_date=next_start.isoformat(),
    )
    return instance
