"""LearningHistory ORM — capped most-recent-first summary list, one row per user.

Invariants:
    - entries holds at most history_cap items, one per session_id
    - total_sessions counts distinct sessions ever recorded (not capped)
    - revision bumped on every write (compare-and-swap)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from mathcoach.db.base import Base


class LearningHistory(Base):
    __tablename__ = "learning_history"

    owner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    entries: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    total_sessions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
