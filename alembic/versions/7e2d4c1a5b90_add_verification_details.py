"""add verification details to milestones

Revision ID: 7e2d4c1a5b90
Revises: 3c1f8a2b9d47
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7e2d4c1a5b90"
down_revision: str | Sequence[str] | None = "3c1f8a2b9d47"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "milestones", sa.Column("learner_notes", sa.String(length=500), nullable=True)
    )
    op.add_column(
        "milestones",
        sa.Column("learner_submission_url", sa.String(length=2048), nullable=True),
    )
    op.add_column(
        "milestones", sa.Column("mentor_notes", sa.String(length=500), nullable=True)
    )
    op.add_column(
        "milestones", sa.Column("mentor_rating", sa.SmallInteger(), nullable=True)
    )
    op.add_column(
        "milestones", sa.Column("mentor_feedback", sa.Text(), nullable=True)
    )
    op.create_check_constraint(
        "ck_milestones_mentor_rating",
        "milestones",
        "mentor_rating IS NULL OR mentor_rating BETWEEN 1 AND 5",
    )


def downgrade() -> None:
    op.drop_constraint("ck_milestones_mentor_rating", "milestones", type_="check")
    op.drop_column("milestones", "mentor_feedback")
    op.drop_column("milestones", "mentor_rating")
    op.drop_column("milestones", "mentor_notes")
    op.drop_column("milestones", "learner_submission_url")
    op.drop_column("milestones", "learner_notes")
