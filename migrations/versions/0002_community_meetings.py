"""Add community meetings and attendance

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-07

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "community_meeting",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("community_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_announcement", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurrence_frequency", sa.String(length=16), nullable=True),
        sa.Column("recurrence_interval", sa.Integer(), nullable=True),
        sa.Column("recurrence_day_of_week", sa.String(length=16), nullable=True),
        sa.Column("recurrence_day_of_month", sa.Integer(), nullable=True),
        sa.Column("parent_meeting_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column(
            "is_recurrence_template", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("instance_date", sa.Date(), nullable=True),
        sa.Column("exception_type", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["community_id"], ["community.id"], name="fk_meeting_community", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["parent_meeting_id"],
            ["community_meeting.id"],
            name="fk_meeting_parent",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("parent_meeting_id", "start_date", name="uq_meeting_parent_start"),
    )
    op.create_index("ix_community_meeting_community_id", "community_meeting", ["community_id"])
    op.create_index("ix_community_meeting_start_date", "community_meeting", ["start_date"])
    op.create_index(
        "ix_community_meeting_parent_meeting_id", "community_meeting", ["parent_meeting_id"]
    )

    op.create_table(
        "community_attendance",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("meeting_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("member_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("attended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["meeting_id"],
            ["community_meeting.id"],
            name="fk_attendance_meeting",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["member_id"], ["community_member.id"], name="fk_attendance_member", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("meeting_id", "member_id", name="uq_attendance_meeting_member"),
    )
    op.create_index(
        "ix_community_attendance_meeting_id", "community_attendance", ["meeting_id"]
    )
    op.create_index("ix_community_attendance_member_id", "community_attendance", ["member_id"])


def downgrade() -> None:
    op.drop_index("ix_community_attendance_member_id", table_name="community_attendance")
    op.drop_index("ix_community_attendance_meeting_id", table_name="community_attendance")
    op.drop_table("community_attendance")
    op.drop_index("ix_community_meeting_parent_meeting_id", table_name="community_meeting")
    op.drop_index("ix_community_meeting_start_date", table_name="community_meeting")
    op.drop_index("ix_community_meeting_community_id", table_name="community_meeting")
    op.drop_table("community_meeting")
