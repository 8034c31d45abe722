"""Session Store — persistence and lifecycle transitions for learning sessions.

Invariants:
    - Exactly one row per session_id (primary key + INSERT ... ON CONFLICT DO NOTHING)
    - Every read and write is scoped by owner; a foreign or missing session is
      reported identically (NotFoundOrForbiddenError)
    - Every mutation is a compare-and-swap on `revision`; no lost updates
    - current_round never decreases and never exceeds total_rounds + 1
    - Only ACTIVE sessions change; COMPLETED and ABANDONED are terminal
    - Each public operation commits its own transaction

Design Decisions:
    - Optimistic concurrency over SELECT ... FOR UPDATE: SQLite has no row locks
      and contention per session is one student (ADR: CAS + bounded retry)
    - record_round folds append + advance + complete into one CAS write so a
      duplicate submission can never advance the round twice
    - Duplicate create by the same owner is a no-op returning the stored session
      (client retries are safe); a different owner gets DuplicateSessionError
"""

import logging
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.dialogue_rules import round_after_answer
from mathcoach.core.domain_types import (
    DEFAULT_TOTAL_ROUNDS, CompletionReason, SessionStatus,
)
from mathcoach.core.errors import (
    ConcurrencyError, DuplicateSessionError, ErrorContext,
    InvalidTransitionError, NotFoundOrForbiddenError, StaleRoundError,
    ValidationError,
)
from mathcoach.core.time_utils import end_of_day, start_of_day, utc_now
from mathcoach.infrastructure.upsert import insert_if_absent
from mathcoach.models.learning_session import LearningSession

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
CAS_ATTEMPTS = 3


class SessionStore:
    """Owner-scoped CRUD and state transitions over learning_sessions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────────────

    async def get_session(self, session_id: str, owner: str) -> LearningSession:
        result = await self.db.execute(
            select(LearningSession)
            .where(
                LearningSession.session_id == session_id,
                LearningSession.owner_id == owner,
            )
            .execution_options(populate_existing=True),
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise NotFoundOrForbiddenError(
                "Session", session_id, ErrorContext(session_id=session_id),
            )
        return session

    async def list_sessions(
        self,
        owner: str,
        page: int = 1,
        page_size: int = 10,
        status: SessionStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[LearningSession], int, bool]:
        """Page through the owner's sessions, newest first.

        page < 1 is treated as 1; page_size is clamped to [1, 50].
        end_date is inclusive through the end of that day (UTC).
        """
        page = max(1, page)
        page_size = max(1, min(MAX_PAGE_SIZE, page_size))

        filters = [LearningSession.owner_id == owner]
        if status is not None:
            filters.append(LearningSession.status == SessionStatus(status).value)
        if start_date is not None:
            filters.append(LearningSession.start_time >= start_of_day(start_date))
        if end_date is not None:
            filters.append(LearningSession.start_time <= end_of_day(end_date))

        total = await self.db.scalar(
            select(func.count()).select_from(LearningSession).where(*filters),
        ) or 0
        result = await self.db.execute(
            select(LearningSession)
            .where(*filters)
            .order_by(LearningSession.start_time.desc())
            .limit(page_size)
            .offset((page - 1) * page_size),
        )
        items = list(result.scalars().all())
        return items, total, page * page_size < total

    # ─── Creation ───────────────────────────────────────────────

    async def create_session(
        self,
        owner: str,
        session_id: str,
        problem_text: str,
        analysis: dict | None = None,
        image_ref: str | None = None,
        total_rounds: int = DEFAULT_TOTAL_ROUNDS,
    ) -> tuple[LearningSession, bool]:
        """Create-if-absent. Returns (session, created)."""
        if not session_id or not session_id.strip():
            raise ValidationError("session_id is required", "session_id")
        if not problem_text or not problem_text.strip():
            raise ValidationError("problem_text cannot be empty", "problem_text")

        now = utc_now()
        inserted = await insert_if_absent(
            self.db,
            LearningSession,
            {
                "session_id": session_id,
                "owner_id": owner,
                "problem_text": problem_text.strip(),
                "analysis": analysis or {},
                "image_ref": image_ref,
                "dialogue": [],
                "current_round": 1,
                "total_rounds": total_rounds,
                "status": SessionStatus.ACTIVE.value,
                "start_time": now,
                "revision": 0,
                "updated_at": now,
            },
            conflict_columns=["session_id"],
        )
        await self.db.commit()

        existing = await self.db.get(
            LearningSession, session_id, populate_existing=True,
        )
        if existing is None or existing.owner_id != owner:
            raise DuplicateSessionError(
                session_id, ErrorContext(session_id=session_id),
            )
        if not inserted:
            logger.info(
                "Duplicate create ignored; returning stored session",
                extra={"session_id": session_id, "user_id": owner},
            )
        return existing, inserted

    # ─── Mutations ──────────────────────────────────────────────

    async def append_turn(
        self, session_id: str, owner: str, turn: dict,
    ) -> LearningSession:
        """Append one turn without touching the round counter."""
        for _ in range(CAS_ATTEMPTS):
            session = await self.get_session(session_id, owner)
            self._require_active(session, SessionStatus.ACTIVE)
            if await self._compare_and_swap(
                session, dialogue=[*session.dialogue, turn],
            ):
                return await self.get_session(session_id, owner)
        raise self._conflict(session_id, "append_turn")

    async def advance_round(self, session_id: str, owner: str) -> int:
        """Move to the next round, capped at total_rounds + 1."""
        for _ in range(CAS_ATTEMPTS):
            session = await self.get_session(session_id, owner)
            self._require_active(session, SessionStatus.ACTIVE)
            next_round = round_after_answer(
                session.current_round, session.total_rounds,
            )
            if next_round == session.current_round:
                return next_round
            if await self._compare_and_swap(session, current_round=next_round):
                return next_round
        raise self._conflict(session_id, "advance_round")

    async def record_round(
        self,
        session_id: str,
        owner: str,
        *,
        expected_round: int,
        revision: int,
        turns: list[dict],
        complete: bool,
    ) -> LearningSession:
        """Single guarded write: append turns, advance round, optionally complete.

        Guard: current_round == expected_round AND revision == revision AND
        status == active. Zero rows matched → StaleRoundError, nothing written.
        """
        session = await self.get_session(session_id, owner)
        values: dict = {
            "dialogue": [*session.dialogue, *turns],
            "current_round": round_after_answer(expected_round, session.total_rounds),
        }
        if complete:
            values.update(
                status=SessionStatus.COMPLETED.value,
                current_round=session.total_rounds + 1,
                end_time=utc_now(),
                completion_reason=CompletionReason.ROUNDS_EXHAUSTED.value,
            )
        result = await self.db.execute(
            update(LearningSession)
            .where(
                LearningSession.session_id == session_id,
                LearningSession.owner_id == owner,
                LearningSession.current_round == expected_round,
                LearningSession.revision == revision,
                LearningSession.status == SessionStatus.ACTIVE.value,
            )
            .values(**values, revision=revision + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            await self.db.rollback()
            current = await self.get_session(session_id, owner)
            raise StaleRoundError(
                expected_round, current.current_round,
                ErrorContext(session_id=session_id, user_id=owner),
            )
        await self.db.commit()
        return await self.get_session(session_id, owner)

    async def complete_session(
        self,
        session_id: str,
        owner: str,
        reason: CompletionReason = CompletionReason.USER_COMPLETED,
    ) -> LearningSession:
        """active → completed. Idempotent on completed; abandoned → InvalidTransitionError."""
        return await self._finish(
            session_id, owner, SessionStatus.COMPLETED, reason,
        )

    async def abandon_session(
        self,
        session_id: str,
        owner: str,
        reason: CompletionReason = CompletionReason.USER_ABANDONED,
        note: str | None = None,
    ) -> LearningSession:
        """active → abandoned. Idempotent on abandoned; completed → InvalidTransitionError.

        `note` is the caller's free-text reason, stored only by the transitioning call.
        """
        return await self._finish(
            session_id, owner, SessionStatus.ABANDONED, reason, note=note,
        )

    # ─── Helpers ────────────────────────────────────────────────

    async def _finish(
        self,
        session_id: str,
        owner: str,
        target: SessionStatus,
        reason: CompletionReason,
        note: str | None = None,
    ) -> LearningSession:
        for _ in range(CAS_ATTEMPTS):
            session = await self.get_session(session_id, owner)
            if session.status == target.value:
                return session
            self._require_active(session, target)
            values: dict = {
                "status": target.value,
                "end_time": utc_now(),
                "completion_reason": reason.value,
            }
            if note:
                values["abandon_note"] = note
            if target == SessionStatus.COMPLETED:
                values["current_round"] = session.total_rounds + 1
            if await self._compare_and_swap(session, **values):
                logger.info(
                    f"Session {target.value}",
                    extra={"session_id": session_id, "user_id": owner},
                )
                return await self.get_session(session_id, owner)
        raise self._conflict(session_id, f"transition to {target.value}")

    def _require_active(
        self, session: LearningSession, target: SessionStatus,
    ) -> None:
        if session.status != SessionStatus.ACTIVE.value:
            raise InvalidTransitionError(
                session.session_id, session.status, target.value,
            )

    async def _compare_and_swap(self, session: LearningSession, **values) -> bool:
        result = await self.db.execute(
            update(LearningSession)
            .where(
                LearningSession.session_id == session.session_id,
                LearningSession.revision == session.revision,
            )
            .values(**values, revision=session.revision + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.warning(
                "Revision conflict, retrying",
                extra={"session_id": session.session_id},
            )
            return False
        await self.db.commit()
        return True

    def _conflict(self, session_id: str, operation: str) -> ConcurrencyError:
        return ConcurrencyError(
            f"Concurrent modification of session '{session_id}' during {operation}",
            ErrorContext(session_id=session_id),
        )
