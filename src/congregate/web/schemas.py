from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from congregate.db.models import ExceptionType, MeetingKind, MemberState
from congregate.recurrence import RecurrenceFrequency
from congregate.services import ParticipationFrequency


class MeetingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    start_date: datetime
    end_date: datetime | None = None
    duration_minutes: int = Field(gt=0)
    is_announcement: bool = False

    recurrence_frequency: RecurrenceFrequency | None = None
    recurrence_interval: int | None = Field(default=None, ge=1, le=365)
    recurrence_day_of_week: str | None = None
    recurrence_day_of_month: int | None = Field(default=None, ge=1, le=31)


class MeetingUpdate(BaseModel):
    # Only fields the client actually sent are applied (see exclude_unset).
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    duration_minutes: int | None = Field(default=None, gt=0)
    is_announcement: bool | None = None
    exception_type: ExceptionType | None = None

    recurrence_frequency: RecurrenceFrequency | None = None
    recurrence_interval: int | None = Field(default=None, ge=1, le=365)
    recurrence_day_of_week: str | None = None
    recurrence_day_of_month: int | None = Field(default=None, ge=1, le=31)


class MeetingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    community_id: uuid.UUID
    title: str
    description: str | None
    start_date: datetime
    end_date: datetime | None
    duration_minutes: int
    is_announcement: bool
    recurrence_frequency: RecurrenceFrequency | None
    recurrence_interval: int | None
    recurrence_day_of_week: str | None
    recurrence_day_of_month: int | None
    parent_meeting_id: uuid.UUID | None
    is_recurrence_template: bool
    instance_date: date | None
    exception_type: ExceptionType | None
    kind: MeetingKind
    recurrence_label: str


class AttendanceRecordIn(BaseModel):
    member_id: uuid.UUID
    attended: bool
    notes: str | None = None


class SingleAttendanceIn(BaseModel):
    member_id: uuid.UUID
    attended: bool


class AttendanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    meeting_id: uuid.UUID
    member_id: uuid.UUID
    attended: bool
    notes: str | None
    recorded_at: datetime


class PublicAttendanceEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: uuid.UUID
    first_name: str
    last_name: str
    state: MemberState
    joined_at: datetime
    attended: bool


class PublicAttendanceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    community_id: uuid.UUID
    community_name: str
    meeting_id: uuid.UUID
    meeting_title: str
    meeting_start_date: datetime
    members: list[PublicAttendanceEntryRead]


class PublicAttendanceAck(BaseModel):
    success: bool
    member_id: uuid.UUID
    attended: bool


class MemberParticipationRead(BaseModel):
    id: uuid.UUID
    participant_id: uuid.UUID
    first_name: str
    last_name: str
    state: MemberState
    notes: str | None
    joined_at: datetime
    attendance_rate: float
    frequency: ParticipationFrequency


class TimelineEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    meeting_id: uuid.UUID
    title: str
    start_date: datetime
    is_announcement: bool
    attended: bool | None
    notes: str | None


class StateCount(BaseModel):
    state: MemberState
    count: int


class FrequencyCount(BaseModel):
    frequency: ParticipationFrequency
    count: int


class DashboardRead(BaseModel):
    member_count: int
    meeting_count: int
    member_state_distribution: list[StateCount]
    participation_frequency: list[FrequencyCount]


class CommunityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    city: str | None = Field(default=None, max_length=120)
    country: str | None = Field(default=None, max_length=120)


class CommunityUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    city: str | None = Field(default=None, max_length=120)
    country: str | None = Field(default=None, max_length=120)


class CommunityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None
    city: str | None
    country: str | None
    created_at: datetime


class CommunitySummaryRead(CommunityRead):
    member_count: int
    meeting_count: int


class MemberAdd(BaseModel):
    participant_id: uuid.UUID


class MemberCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=320)


class MemberStateUpdate(BaseModel):
    state: MemberState


class MemberNotesUpdate(BaseModel):
    notes: str | None = None


class MemberRead(BaseModel):
    id: uuid.UUID
    community_id: uuid.UUID
    participant_id: uuid.UUID
    first_name: str
    last_name: str
    email: str | None
    state: MemberState
    notes: str | None
    joined_at: datetime
