"""LearningReport ORM — cached evaluation of a completed session.

Invariants:
    - session_id is UNIQUE: at most one report per session, ever
    - Never mutated after insert (written with ON CONFLICT DO NOTHING)
    - score in [0, 100]; source is "collaborator" or "fallback"

Design Decisions:
    - Full report kept in payload JSON; score/level denormalized for stats queries
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from mathcoach.db.base import Base


class LearningReport(Base):
    __tablename__ = "learning_reports"
    __table_args__ = (
        UniqueConstraint("session_id", name="uq_learning_reports_session_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    owner_id: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
