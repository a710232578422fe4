"""create projects, milestones, progress_entries

Revision ID: 3c1f8a2b9d47
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1f8a2b9d47"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("apprentice_id", sa.String(length=320), nullable=False),
        sa.Column("guide_id", sa.String(length=320), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_end_date", sa.Date(), nullable=True),
        sa.Column("temp_expected_end_date", sa.Date(), nullable=True),
        sa.Column(
            "is_temp_end_date_confirmed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("actual_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "progress_percentage", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "milestones",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "learner_verified", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("learner_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "mentor_verified", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("mentor_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_note", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "review_read_by_learner",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.UniqueConstraint("project_id", "position"),
    )
    op.create_index(
        op.f("ix_milestones_project_id"), "milestones", ["project_id"]
    )

    op.create_table(
        "progress_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("author_id", sa.String(length=320), nullable=False),
        sa.Column(
            "author_role", sa.String(length=16), nullable=False, server_default="guide"
        ),
        sa.UniqueConstraint("project_id", "percentage"),
    )
    op.create_index(
        op.f("ix_progress_entries_project_id"), "progress_entries", ["project_id"]
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_progress_entries_project_id"), table_name="progress_entries")
    op.drop_table("progress_entries")
    op.drop_index(op.f("ix_milestones_project_id"), table_name="milestones")
    op.drop_table("milestones")
    op.drop_table("projects")
