"""Report Generator — idempotent, cached learning report for a completed session.

Invariants:
    - At most one report per session (UNIQUE session_id + INSERT ... ON CONFLICT DO NOTHING)
    - Every caller, including concurrent first-time callers, returns the stored row
    - Reports exist only for COMPLETED sessions (SessionNotReadyError otherwise)
    - generate_or_get_report never fails because of the collaborator: any
      collaborator error, timeout or invalid output yields the deterministic fallback
    - Side effects (stats, behavior, history) are queued only by the call that inserted

Design Decisions:
    - Insert-then-read-back over "check then insert": the unique constraint is the
      arbiter, so the loser of a race reads the winner's report
    - Collaborator call happens before the insert and may be wasted on a lost race;
      acceptable for a rare duplicate click, no lock held across a model call
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.domain_types import BehaviorAction, ReportSource, SessionStatus
from mathcoach.core.errors import (
    CollaboratorError, ErrorContext, NotFoundOrForbiddenError, SessionNotReadyError,
)
from mathcoach.core.report_stats import build_fallback_report, compute_basic_stats
from mathcoach.core.repository_protocols import ReportCollaborator
from mathcoach.core.request_context import RequestContext
from mathcoach.core.time_utils import utc_now
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.upsert import insert_if_absent
from mathcoach.models.learning_report import LearningReport
from mathcoach.models.learning_session import LearningSession
from mathcoach.services.behavior_logger import BehaviorLogger
from mathcoach.services.jobs import recompute_user_stats, refresh_history_entry, submit_job
from mathcoach.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class ReportGenerator:
    def __init__(
        self,
        db: AsyncSession,
        collaborator: ReportCollaborator,
        jobs: BackgroundJobQueue | None = None,
        timeout_seconds: float = 30.0,
    ):
        self.db = db
        self.collaborator = collaborator
        self.jobs = jobs
        self.timeout_seconds = timeout_seconds
        self.store = SessionStore(db)
        self.behavior = BehaviorLogger(jobs)

    async def _find(self, session_id: str, owner: str) -> LearningReport | None:
        result = await self.db.execute(
            select(LearningReport).where(
                LearningReport.session_id == session_id,
                LearningReport.owner_id == owner,
            ),
        )
        return result.scalar_one_or_none()

    async def get_report(self, ctx: RequestContext, session_id: str) -> LearningReport:
        report = await self._find(session_id, ctx.user_id)
        if report is None:
            raise NotFoundOrForbiddenError(
                "Report", session_id, ErrorContext(session_id=session_id),
            )
        return report

    async def generate_or_get_report(
        self, ctx: RequestContext, session_id: str,
    ) -> LearningReport:
        existing = await self._find(session_id, ctx.user_id)
        if existing is not None:
            return existing

        session = await self.store.get_session(session_id, ctx.user_id)
        if session.status != SessionStatus.COMPLETED.value:
            raise SessionNotReadyError(session_id, session.status)

        stats = compute_basic_stats(
            session.dialogue or [],
            session.start_time,
            session.end_time or utc_now(),
            session.total_rounds,
        )
        payload, source = await self._evaluate(session, stats)
        payload["basic_stats"] = stats

        inserted = await insert_if_absent(
            self.db,
            LearningReport,
            {
                "session_id": session_id,
                "owner_id": ctx.user_id,
                "score": payload["score"],
                "level": payload["level"],
                "source": source.value,
                "payload": payload,
                "created_at": utc_now(),
            },
            conflict_columns=["session_id"],
        )
        await self.db.commit()

        stored = await self._find(session_id, ctx.user_id)
        if stored is None:
            # Row exists under another owner: session ids are owner-scoped,
            # so this is indistinguishable from a missing report.
            raise NotFoundOrForbiddenError(
                "Report", session_id, ErrorContext(session_id=session_id),
            )
        if inserted:
            logger.info(
                f"Report generated (score={stored.score}, source={stored.source})",
                extra={"session_id": session_id, "user_id": ctx.user_id},
            )
            self._after_insert(ctx, stored)
        return stored

    async def _evaluate(
        self, session: LearningSession, stats: dict,
    ) -> tuple[dict, ReportSource]:
        try:
            evaluation = await asyncio.wait_for(
                self.collaborator.evaluate(
                    problem_text=session.problem_text,
                    analysis=session.analysis or {},
                    dialogue=session.dialogue or [],
                    stats=stats,
                ),
                timeout=self.timeout_seconds,
            )
            return evaluation.model_dump(), ReportSource.COLLABORATOR
        except asyncio.TimeoutError:
            reason = f"timeout after {self.timeout_seconds}s"
        except CollaboratorError as e:
            reason = f"{e.error_type}: {e.message}"
        except Exception as e:
            logger.error(
                f"Unexpected report collaborator failure: {e}",
                extra={"session_id": session.session_id},
                exc_info=True,
            )
            reason = "unexpected error"
        logger.warning(
            f"Report collaborator unusable ({reason}), using fallback report",
            extra={"session_id": session.session_id, "collaborator": "report"},
        )
        return build_fallback_report(stats, session.analysis), ReportSource.FALLBACK

    def _after_insert(self, ctx: RequestContext, report: LearningReport) -> None:
        owner = ctx.user_id
        submit_job(self.jobs, "stats:recompute", recompute_user_stats, owner)
        self.behavior.record(
            owner, BehaviorAction.REPORT_GENERATED,
            {"session_id": report.session_id, "score": report.score},
        )
        submit_job(
            self.jobs, "history:refresh",
            refresh_history_entry, owner, report.session_id, report.score,
        )
