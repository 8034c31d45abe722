"""BehaviorEvent ORM — append-only behavior log.

Invariants:
    - Rows are only inserted, never updated or deleted by the app
    - Written from background jobs; no request path depends on it

Design Decisions:
    - Logging table, not enforcement: observability only, no business logic depends on it
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from mathcoach.db.base import Base


class BehaviorEvent(Base):
    __tablename__ = "user_behaviors"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    owner_id: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    page: Mapped[str | None] = mapped_column(String(100), nullable=True)
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
