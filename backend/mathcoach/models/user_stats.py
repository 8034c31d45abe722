"""UserStats ORM — aggregated learning statistics, overwritten on every recompute.

Invariants:
    - One row per owner_id
    - Every field is derivable from learning_sessions + learning_reports
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from mathcoach.core.domain_types import NO_ACHIEVEMENT
from mathcoach.db.base import Base


class UserStats(Base):
    __tablename__ = "user_stats"

    owner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    total_learning_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    average_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_learning_date: Mapped[str | None] = mapped_column(
        String(10), nullable=True,
    )
    last_learning_date: Mapped[str | None] = mapped_column(
        String(10), nullable=True,
    )
    latest_achievement: Mapped[str] = mapped_column(
        String(32), nullable=False, default=NO_ACHIEVEMENT,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
