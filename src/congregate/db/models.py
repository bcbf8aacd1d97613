from __future__ import annotations

import enum
import uuid
from datetime import UTC, date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from congregate.recurrence import RecurrenceFrequency


class Base(DeclarativeBase):
    pass


class MemberState(enum.StrEnum):
    far_from_location = "far_from_location"
    no_answer = "no_answer"
    another_group = "another_group"
    active_member = "active_member"


class ExceptionType(enum.StrEnum):
    modified = "modified"
    cancelled = "cancelled"


class MeetingKind(enum.StrEnum):
    standalone = "standalone"
    template = "template"
    instance = "instance"


class Community(Base):
    __tablename__ = "community"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    country: Mapped[str | None] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    members: Mapped[list[CommunityMember]] = relationship(
        back_populates="community", cascade="all, delete-orphan"
    )
    meetings: Mapped[list[CommunityMeeting]] = relationship(
        back_populates="community", cascade="all, delete-orphan"
    )


class Participant(Base):
    __tablename__ = "participant"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CommunityMember(Base):
    __tablename__ = "community_member"
    __table_args__ = (
        UniqueConstraint("community_id", "participant_id", name="uq_community_member_participant"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    community_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("community.id", ondelete="CASCADE"), index=True
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("participant.id", ondelete="CASCADE"), index=True
    )

    state: Mapped[MemberState] = mapped_column(
        Enum(MemberState, native_enum=False, length=32), default=MemberState.active_member
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    community: Mapped[Community] = relationship(back_populates="members")
    participant: Mapped[Participant] = relationship()


class CommunityMeeting(Base):
    __tablename__ = "community_meeting"
    __table_args__ = (
        # One generated instance per parent and start date.
        UniqueConstraint("parent_meeting_id", "start_date", name="uq_meeting_parent_start"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    community_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("community.id", ondelete="CASCADE"), index=True
    )

    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer)
    is_announcement: Mapped[bool] = mapped_column(Boolean, default=False)

    # Recurrence configuration; all NULL for standalone meetings.
    recurrence_frequency: Mapped[RecurrenceFrequency | None] = mapped_column(
        Enum(RecurrenceFrequency, native_enum=False, length=16), nullable=True
    )
    recurrence_interval: Mapped[int | None] = mapped_column(Integer, nullable=True)
    recurrence_day_of_week: Mapped[str | None] = mapped_column(String(16), nullable=True)
    recurrence_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)

    parent_meeting_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("community_meeting.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # True for templates and for generated instances, which can spawn the next occurrence.
    is_recurrence_template: Mapped[bool] = mapped_column(Boolean, default=False)
    instance_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    exception_type: Mapped[ExceptionType | None] = mapped_column(
        Enum(ExceptionType, native_enum=False, length=16), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    community: Mapped[Community] = relationship(back_populates="meetings")

    @property
    def kind(self) -> MeetingKind:
        if self.parent_meeting_id is not None:
            return MeetingKind.instance
        if self.recurrence_frequency is not None:
            return MeetingKind.template
        return MeetingKind.standalone


class CommunityAttendance(Base):
    __tablename__ = "community_attendance"
    __table_args__ = (
        UniqueConstraint("meeting_id", "member_id", name="uq_attendance_meeting_member"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    meeting_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("community_meeting.id", ondelete="CASCADE"), index=True
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("community_member.id", ondelete="CASCADE"), index=True
    )

    attended: Mapped[bool] = mapped_column(Boolean, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    member: Mapped[CommunityMember] = relationship()
