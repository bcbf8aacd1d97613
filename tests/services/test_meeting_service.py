from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

import congregate.db as db
from congregate.db.models import (
    Community,
    CommunityAttendance,
    CommunityMeeting,
    MeetingKind,
)
from congregate.errors import (
    InvalidStateError,
    NotFoundError,
    TemporalConstraintError,
    ValidationFailureError,
)
from congregate.recurrence import RecurrenceFrequency, as_utc
from congregate.services import (
    AttendanceRecord,
    MeetingScope,
    create_meeting,
    create_next_instance,
    delete_meeting,
    get_meeting,
    list_instances,
    record_attendance,
    update_meeting,
)
from congregate.testing.factories import create_community, create_member

NOW = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
MONDAY_10AM = datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


async def _create_template(
    db_session: AsyncSession, community: Community, **overrides: Any
) -> CommunityMeeting:
    data: dict[str, Any] = {
        "title": "Weekly gathering",
        "description": "Prayer and sharing",
        "start_date": MONDAY_10AM,
        "end_date": MONDAY_10AM + timedelta(hours=2),
        "duration_minutes": 120,
        "recurrence_frequency": "weekly",
        "recurrence_day_of_week": "Monday",
    }
    data.update(overrides)
    return await create_meeting(db_session, community.id, data)


async def _count(db_session: AsyncSession, model: type[Any], *predicates: Any) -> int:
    result = await db_session.execute(select(func.count()).select_from(model).where(*predicates))
    return int(result.scalar_one())


@pytest.mark.asyncio
async def test_create_meeting_classifies_standalone_and_template(
    db_session: AsyncSession, community: Community
) -> None:
    standalone = await create_meeting(
        db_session,
        community.id,
        {"title": "Kickoff", "start_date": MONDAY_10AM, "duration_minutes": 60},
    )
    template = await _create_template(db_session, community)

    assert standalone.is_recurrence_template is False
    assert standalone.kind is MeetingKind.standalone
    assert template.is_recurrence_template is True
    assert template.kind is MeetingKind.template
    assert template.recurrence_frequency is RecurrenceFrequency.weekly
    assert template.recurrence_interval == 1
    assert template.recurrence_day_of_week == "monday"


@pytest.mark.asyncio
async def test_create_meeting_rejects_bad_input(
    db_session: AsyncSession, community: Community
) -> None:
    with pytest.raises(ValidationFailureError, match="Unsupported frequency"):
        await _create_template(db_session, community, recurrence_frequency="yearly")

    with pytest.raises(ValidationFailureError, match="Invalid day of month"):
        await _create_template(
            db_session, community, recurrence_frequency="monthly", recurrence_day_of_month=40
        )

    with pytest.raises(ValidationFailureError, match="Unknown meeting fields: parent_meeting_id"):
        await _create_template(db_session, community, parent_meeting_id=uuid.uuid4())

    with pytest.raises(ValidationFailureError, match="Missing meeting fields: duration_minutes"):
        await create_meeting(db_session, community.id, {"title": "X", "start_date": NOW})

    with pytest.raises(NotFoundError, match="Community not found"):
        await _create_template(db_session, Community(id=uuid.uuid4(), name="ghost"))


@pytest.mark.asyncio
async def test_update_meeting_missing_raises_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await update_meeting(db_session, uuid.uuid4(), {"title": "Nope"})


@pytest.mark.asyncio
async def test_update_recurrence_frequency_reclassifies_meeting(
    db_session: AsyncSession, community: Community
) -> None:
    meeting = await create_meeting(
        db_session,
        community.id,
        {"title": "Kickoff", "start_date": MONDAY_10AM, "duration_minutes": 60},
    )

    updated = await update_meeting(
        db_session,
        meeting.id,
        {"recurrence_frequency": "monthly", "recurrence_day_of_month": 15},
    )
    assert updated.is_recurrence_template is True
    assert updated.kind is MeetingKind.template

    updated = await update_meeting(db_session, meeting.id, {"recurrence_frequency": None})
    assert updated.is_recurrence_template is False
    assert updated.recurrence_day_of_month is None
    assert updated.kind is MeetingKind.standalone


@pytest.mark.asyncio
@pytest.mark.parametrize("scope", [MeetingScope.all, MeetingScope.all_future])
async def test_series_update_changes_template_only(
    db_session: AsyncSession, community: Community, scope: MeetingScope
) -> None:
    template = await _create_template(db_session, community)
    instance = await create_next_instance(db_session, template.id, now=NOW)

    await update_meeting(
        db_session, template.id, {"title": "Renamed", "duration_minutes": 90}, scope
    )

    async with db.SessionMaker() as verify:
        fresh_template = await get_meeting(verify, template.id)
        fresh_instance = await get_meeting(verify, instance.id)
    assert fresh_template.title == "Renamed"
    assert fresh_template.duration_minutes == 90
    assert fresh_instance.title == "Weekly gathering"
    assert fresh_instance.duration_minutes == 120


@pytest.mark.asyncio
async def test_update_rejects_clearing_required_fields(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)

    with pytest.raises(ValidationFailureError, match="Fields cannot be empty: title"):
        await update_meeting(db_session, template.id, {"title": None})
    with pytest.raises(ValidationFailureError, match="Invalid scope"):
        await update_meeting(db_session, template.id, {"title": "X"}, "everything")


@pytest.mark.asyncio
async def test_delete_this_removes_meeting_and_attendance(
    db_session: AsyncSession, community: Community
) -> None:
    member = await create_member(db_session, community.id)
    meeting = await create_meeting(
        db_session,
        community.id,
        {"title": "Kickoff", "start_date": MONDAY_10AM, "duration_minutes": 60},
    )
    await record_attendance(db_session, meeting.id, [AttendanceRecord(member.id, True)])

    await delete_meeting(db_session, meeting.id)

    with pytest.raises(NotFoundError):
        await get_meeting(db_session, meeting.id)
    assert await _count(db_session, CommunityAttendance) == 0


@pytest.mark.asyncio
async def test_delete_all_removes_template_instances_and_attendance(
    db_session: AsyncSession, community: Community
) -> None:
    member = await create_member(db_session, community.id)
    template = await _create_template(db_session, community)
    first = await create_next_instance(db_session, template.id, now=NOW)
    chained = await create_next_instance(db_session, first.id, now=NOW)
    for meeting_id in (template.id, first.id, chained.id):
        await record_attendance(db_session, meeting_id, [AttendanceRecord(member.id, True)])

    other = await create_meeting(
        db_session,
        community.id,
        {"title": "Unrelated", "start_date": MONDAY_10AM, "duration_minutes": 30},
    )
    await record_attendance(db_session, other.id, [AttendanceRecord(member.id, False)])

    await delete_meeting(db_session, template.id, MeetingScope.all)

    async with db.SessionMaker() as verify:
        for meeting_id in (template.id, first.id, chained.id):
            with pytest.raises(NotFoundError):
                await get_meeting(verify, meeting_id)
        assert (await get_meeting(verify, other.id)).title == "Unrelated"
        assert await _count(verify, CommunityAttendance) == 1
        kept = CommunityAttendance.meeting_id == other.id
        assert await _count(verify, CommunityAttendance, kept) == 1


@pytest.mark.asyncio
async def test_delete_all_future_stops_recurrence_without_deleting(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)
    instance = await create_next_instance(db_session, template.id, now=NOW)

    await delete_meeting(db_session, template.id, MeetingScope.all_future)

    async with db.SessionMaker() as verify:
        fresh = await get_meeting(verify, template.id)
        assert fresh.kind is MeetingKind.standalone
        assert fresh.is_recurrence_template is False
        assert fresh.recurrence_frequency is None
        assert fresh.recurrence_interval is None
        assert fresh.recurrence_day_of_week is None
        kept = await get_meeting(verify, instance.id)
        assert kept.parent_meeting_id == template.id

    with pytest.raises(InvalidStateError):
        await create_next_instance(db_session, template.id, now=NOW)


@pytest.mark.asyncio
async def test_delete_series_scope_on_standalone_deletes_only_it(
    db_session: AsyncSession, community: Community
) -> None:
    meeting = await create_meeting(
        db_session,
        community.id,
        {"title": "One-off", "start_date": MONDAY_10AM, "duration_minutes": 60},
    )

    await delete_meeting(db_session, meeting.id, MeetingScope.all_future)

    with pytest.raises(NotFoundError):
        await get_meeting(db_session, meeting.id)


@pytest.mark.asyncio
async def test_delete_this_on_template_detaches_instances(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)
    instance = await create_next_instance(db_session, template.id, now=NOW)

    await delete_meeting(db_session, template.id, MeetingScope.this)

    async with db.SessionMaker() as verify:
        survivor = await get_meeting(verify, instance.id)
    assert survivor.parent_meeting_id is None
    assert survivor.kind is MeetingKind.template


@pytest.mark.asyncio
async def test_delete_missing_meeting_raises_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await delete_meeting(db_session, uuid.uuid4(), MeetingScope.all)


@pytest.mark.asyncio
async def test_create_next_instance_copies_template(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community, is_announcement=True)

    instance = await create_next_instance(db_session, template.id, now=NOW)

    assert instance.id != template.id
    assert as_utc(instance.start_date) == datetime(2024, 1, 8, 10, 0, tzinfo=UTC)
    assert as_utc(instance.end_date) == datetime(2024, 1, 8, 12, 0, tzinfo=UTC)
    assert instance.instance_date == date(2024, 1, 8)
    assert instance.parent_meeting_id == template.id
    assert instance.is_recurrence_template is True
    assert instance.kind is MeetingKind.instance
    assert instance.title == template.title
    assert instance.description == template.description
    assert instance.duration_minutes == 120
    assert instance.is_announcement is True
    assert instance.recurrence_frequency is RecurrenceFrequency.weekly
    assert instance.recurrence_day_of_week == "monday"
    assert [m.id for m in await list_instances(db_session, template.id)] == [instance.id]


@pytest.mark.asyncio
async def test_create_next_instance_chains_from_instance(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community, end_date=None)
    first = await create_next_instance(db_session, template.id, now=NOW)

    second = await create_next_instance(db_session, first.id, now=NOW)

    assert second.parent_meeting_id == first.id
    assert second.end_date is None
    assert as_utc(second.start_date) == datetime(2024, 1, 15, 10, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_create_next_instance_twice_reports_existing_instance(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)
    await create_next_instance(db_session, template.id, now=NOW)

    with pytest.raises(TemporalConstraintError, match="already exists"):
        await create_next_instance(db_session, template.id, now=NOW)

    assert await _count(
        db_session, CommunityMeeting, CommunityMeeting.parent_meeting_id == template.id
    ) == 1


@pytest.mark.asyncio
async def test_create_next_instance_unique_constraint_maps_to_existing(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)
    elsewhere = await create_community(db_session, name="Elsewhere")
    # Same parent and start date but another community slips past the lookup.
    db_session.add(
        CommunityMeeting(
            community_id=elsewhere.id,
            title="Conflicting",
            start_date=datetime(2024, 1, 8, 10, 0, tzinfo=UTC),
            duration_minutes=60,
            parent_meeting_id=template.id,
            is_recurrence_template=True,
        )
    )
    await db_session.commit()

    with pytest.raises(TemporalConstraintError, match="already exists"):
        await create_next_instance(db_session, template.id, now=NOW)


@pytest.mark.asyncio
async def test_create_next_instance_requires_template(
    db_session: AsyncSession, community: Community
) -> None:
    meeting = await create_meeting(
        db_session,
        community.id,
        {"title": "One-off", "start_date": MONDAY_10AM, "duration_minutes": 60},
    )

    with pytest.raises(InvalidStateError, match="not a recurrence template"):
        await create_next_instance(db_session, meeting.id, now=NOW)
    with pytest.raises(NotFoundError):
        await create_next_instance(db_session, uuid.uuid4(), now=NOW)


@pytest.mark.asyncio
async def test_create_next_instance_must_be_in_future(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)

    with pytest.raises(TemporalConstraintError, match="must be in the future"):
        await create_next_instance(
            db_session, template.id, now=datetime(2024, 1, 8, 10, 0, tzinfo=UTC)
        )


@pytest.mark.asyncio
async def test_create_next_instance_enforces_cap(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(db_session, community)
    db_session.add_all(
        [
            CommunityMeeting(
                community_id=community.id,
                title="Earlier",
                start_date=MONDAY_10AM - timedelta(weeks=week),
                duration_minutes=60,
                parent_meeting_id=template.id,
                is_recurrence_template=True,
            )
            for week in range(1, 53)
        ]
    )
    await db_session.commit()

    with pytest.raises(TemporalConstraintError, match="Maximum number of instances"):
        await create_next_instance(db_session, template.id, now=NOW)


@pytest.mark.asyncio
async def test_create_next_instance_monthly_clamps_day(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(
        db_session,
        community,
        start_date=datetime(2024, 1, 31, 10, 0, tzinfo=UTC),
        end_date=None,
        recurrence_frequency="monthly",
        recurrence_day_of_week=None,
        recurrence_day_of_month=31,
    )

    instance = await create_next_instance(db_session, template.id, now=NOW)

    assert as_utc(instance.start_date) == datetime(2024, 2, 29, 10, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_offset_start_date_is_stored_as_utc(
    db_session: AsyncSession, community: Community
) -> None:
    plus_five = timezone(timedelta(hours=5))
    template = await _create_template(
        db_session,
        community,
        start_date=datetime(2030, 1, 7, 10, 0, tzinfo=plus_five),
        end_date=None,
    )

    async with db.SessionMaker() as fresh:
        reloaded = await get_meeting(fresh, template.id)
        assert as_utc(reloaded.start_date) == datetime(2030, 1, 7, 5, 0, tzinfo=UTC)

        with pytest.raises(TemporalConstraintError, match="must be in the future"):
            await create_next_instance(
                fresh, template.id, now=datetime(2030, 1, 14, 7, 0, tzinfo=UTC)
            )

        instance = await create_next_instance(
            fresh, template.id, now=datetime(2030, 1, 14, 4, 0, tzinfo=UTC)
        )
        assert as_utc(instance.start_date) == datetime(2030, 1, 14, 5, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_moving_instance_onto_sibling_date_is_rejected(
    db_session: AsyncSession, community: Community
) -> None:
    template = await _create_template(
        db_session,
        community,
        end_date=None,
        recurrence_frequency="daily",
        recurrence_day_of_week=None,
    )
    first = await create_next_instance(db_session, template.id, now=NOW)
    # Advance the template so its next occurrence is a different sibling.
    await update_meeting(db_session, template.id, {"start_date": first.start_date})
    second = await create_next_instance(db_session, template.id, now=NOW)
    start_before = as_utc(first.start_date)

    with pytest.raises(TemporalConstraintError, match="already exists"):
        await update_meeting(db_session, first.id, {"start_date": second.start_date})

    async with db.SessionMaker() as fresh:
        reloaded = await get_meeting(fresh, first.id)
        assert as_utc(reloaded.start_date) == start_before
