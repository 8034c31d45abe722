"""LearningSession ORM — one attempt at solving one captured problem.

Invariants:
    - session_id is client-generated and the primary key (one row per id)
    - current_round starts at 1, never decreases, never exceeds total_rounds + 1
    - status transitions only active -> completed | abandoned
    - dialogue is append-only; every mutation bumps revision

Design Decisions:
    - JSON column for dialogue and analysis: stored as-is, read as a whole
      (ADR: document-style access, no per-turn queries)
    - revision column: optimistic concurrency for compare-and-swap updates
      instead of row locks (works identically on PostgreSQL and SQLite)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from mathcoach.core.domain_types import DEFAULT_TOTAL_ROUNDS, SessionStatus
from mathcoach.db.base import Base


class LearningSession(Base):
    """Session aggregate — dialogue log plus round/status state machine."""
    __tablename__ = "learning_sessions"
    __table_args__ = (
        Index("ix_learning_sessions_owner_start", "owner_id", "start_time"),
    )

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    problem_text: Mapped[str] = mapped_column(Text, nullable=False)
    analysis: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    image_ref: Mapped[str | None] = mapped_column(String(512), nullable=True)
    dialogue: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    current_round: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1,
    )
    total_rounds: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_TOTAL_ROUNDS,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SessionStatus.ACTIVE.value,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completion_reason: Mapped[str | None] = mapped_column(
        String(32), nullable=True,
    )
    abandon_note: Mapped[str | None] = mapped_column(
        String(200), nullable=True,
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
