"""Learning History — per-user capped summary log of sessions, most recent first.

Invariants:
    - One history row per owner; one entry per session_id inside it
    - Updating a session's entry moves it to the head (no duplicates)
    - entries capped at `cap`
    - total_sessions is the owner's learning_sessions row count at write time;
      sessions are never deleted, so an entry evicted by the cap and refreshed
      later is not counted twice
    - A known score is never erased by a later refresh without one

Design Decisions:
    - Row creation via INSERT ... ON CONFLICT DO NOTHING, updates via CAS on
      revision; no read-then-decide-create-or-update race
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.domain_types import HISTORY_CAP
from mathcoach.core.errors import ConcurrencyError
from mathcoach.core.history_log import paginate, summarize_problem, upsert_history_entry
from mathcoach.core.time_utils import utc_now
from mathcoach.infrastructure.upsert import insert_if_absent
from mathcoach.models.learning_history import LearningHistory
from mathcoach.models.learning_session import LearningSession

logger = logging.getLogger(__name__)

CAS_ATTEMPTS = 5


def build_entry(session: LearningSession, score: int | None) -> dict:
    return {
        "session_id": session.session_id,
        "summary": summarize_problem(session.problem_text),
        "status": session.status,
        "current_round": session.current_round,
        "total_rounds": session.total_rounds,
        "score": score,
        "timestamp": utc_now().isoformat(),
    }


class LearningHistoryService:
    def __init__(self, db: AsyncSession, cap: int = HISTORY_CAP):
        self.db = db
        self.cap = cap

    async def _load(self, owner: str) -> LearningHistory | None:
        result = await self.db.execute(
            select(LearningHistory)
            .where(LearningHistory.owner_id == owner)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _session_count(self, owner: str) -> int:
        return await self.db.scalar(
            select(func.count())
            .select_from(LearningSession)
            .where(LearningSession.owner_id == owner),
        ) or 0

    async def record_session(
        self, owner: str, session: LearningSession, score: int | None = None,
    ) -> LearningHistory:
        entry = build_entry(session, score)
        for _ in range(CAS_ATTEMPTS):
            history = await self._load(owner)
            total = await self._session_count(owner)
            if history is None:
                inserted = await insert_if_absent(
                    self.db,
                    LearningHistory,
                    {
                        "owner_id": owner,
                        "entries": [entry],
                        "total_sessions": max(1, total),
                        "revision": 1,
                        "updated_at": utc_now(),
                    },
                    conflict_columns=["owner_id"],
                )
                await self.db.commit()
                if inserted:
                    logger.info("Learning history started", extra={"user_id": owner})
                    return await self._load(owner)
                continue

            if entry["score"] is None:
                previous = next(
                    (e for e in history.entries if e.get("session_id") == session.session_id),
                    None,
                )
                if previous is not None:
                    entry["score"] = previous.get("score")

            entries, _ = upsert_history_entry(history.entries, entry, self.cap)
            result = await self.db.execute(
                update(LearningHistory)
                .where(
                    LearningHistory.owner_id == owner,
                    LearningHistory.revision == history.revision,
                )
                .values(
                    entries=entries,
                    total_sessions=max(history.total_sessions, total),
                    revision=history.revision + 1,
                    updated_at=utc_now(),
                )
                .execution_options(synchronize_session=False),
            )
            if result.rowcount == 1:
                await self.db.commit()
                return await self._load(owner)
            await self.db.rollback()
        raise ConcurrencyError(f"History for '{owner}' kept changing during update")

    async def list_history(
        self, owner: str, page: int = 1, page_size: int = 10,
    ) -> dict:
        page = max(1, page)
        page_size = max(1, min(self.cap, page_size))
        history = await self._load(owner)
        entries = history.entries if history else []
        items, has_more = paginate(entries, page, page_size)
        return {
            "items": items,
            "total": len(entries),
            "total_sessions": history.total_sessions if history else 0,
            "page": page,
            "page_size": page_size,
            "has_more": has_more,
        }
