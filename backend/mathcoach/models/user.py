"""User ORM — one row per stable identifier issued by the identity service.

Invariants:
    - id is the identity-service identifier (never client-chosen), primary key
    - Created by insert-on-conflict-do-nothing; never hard-deleted
    - learning_stats is a denormalized snapshot of user_stats (overwritten on recompute)
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from mathcoach.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    nickname: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    settings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    learning_stats: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )
    achievements: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
