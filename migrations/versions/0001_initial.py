"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-05

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "community",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("country", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "participant",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_participant_email", "participant", ["email"])

    op.create_table(
        "community_member",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("community_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("participant_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("state", sa.String(length=32), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["community_id"], ["community.id"], name="fk_member_community", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participant.id"],
            name="fk_member_participant",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "community_id", "participant_id", name="uq_community_member_participant"
        ),
    )
    op.create_index("ix_community_member_community_id", "community_member", ["community_id"])
    op.create_index("ix_community_member_participant_id", "community_member", ["participant_id"])


def downgrade() -> None:
    op.drop_index("ix_community_member_participant_id", table_name="community_member")
    op.drop_index("ix_community_member_community_id", table_name="community_member")
    op.drop_table("community_member")
    op.drop_index("ix_participant_email", table_name="participant")
    op.drop_table("participant")
    op.drop_table("community")
