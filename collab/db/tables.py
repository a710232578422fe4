"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in collab/models/.
The domain models stay as-is; these tables are the persistence layer.
PgProjectRepo converts between rows and the Project aggregate.
"""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from collab.db.engine import Base


class ProjectRow(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    apprentice_id: Mapped[str] = mapped_column(String(320), nullable=False)
    guide_id: Mapped[str | None] = mapped_column(String(320), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="Open"
    )  # Open|InProgress|Completed|Cancelled
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    start_date: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expected_end_date: Mapped[datetime.date | None] = mapped_column(
        Date, nullable=True
    )
    temp_expected_end_date: Mapped[datetime.date | None] = mapped_column(
        Date, nullable=True
    )
    is_temp_end_date_confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    actual_end_date: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    progress_percentage: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    # Optimistic concurrency revision; bumped by every save.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MilestoneRow(Base):
    __tablename__ = "milestones"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    due_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    learner_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    learner_verified_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    learner_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    learner_submission_url: Mapped[str | None] = mapped_column(
        String(2048), nullable=True
    )
    mentor_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    mentor_verified_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    mentor_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    mentor_rating: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    mentor_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_read_by_learner: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    __table_args__ = (
        UniqueConstraint("project_id", "position"),
        CheckConstraint(
            "mentor_rating IS NULL OR mentor_rating BETWEEN 1 AND 5",
            name="ck_milestones_mentor_rating",
        ),
    )


class ProgressEntryRow(Base):
    """Append-only; rows are inserted, never updated or deleted."""

    __tablename__ = "progress_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False)
    recorded_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    author_id: Mapped[str] = mapped_column(String(320), nullable=False)
    author_role: Mapped[str] = mapped_column(
        String(16), nullable=False, default="guide"
    )

    __table_args__ = (UniqueConstraint("project_id", "percentage"),)
