"""Dialogue Engine — one Socratic round per submitted answer, then completion.

Invariants:
    - Round only advances through SessionStore.record_round (single CAS write)
    - expected_round != current_round → StaleRoundError, nothing written
    - A syntactically valid answer always advances the round, whatever the
      collaborator returns (errors, timeouts and invalid output → templated fallback)
    - On the final round the session completes and the report is generated
      before the response is returned
    - Answer correctness is reported but never ends a session early
    - Abandon side effects fire only on the actual active → abandoned transition

Design Decisions:
    - Read → decide (core/dialogue_rules) → one guarded write: the collaborator
      call sits between read and write, and the revision guard rejects anything
      that changed meanwhile
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.dialogue_rules import (
    check_answer, fallback_reply, guidance_question, is_final_round,
)
from mathcoach.core.domain_types import BehaviorAction, SessionStatus, TurnRole
from mathcoach.core.errors import (
    CollaboratorError, ErrorContext, InvalidTransitionError, StaleRoundError,
    ValidationError,
)
from mathcoach.core.repository_protocols import DialogueCollaborator
from mathcoach.core.request_context import RequestContext
from mathcoach.core.time_utils import utc_now
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.models.learning_report import LearningReport
from mathcoach.models.learning_session import LearningSession
from mathcoach.services.behavior_logger import BehaviorLogger
from mathcoach.services.jobs import recompute_user_stats, refresh_history_entry, submit_job
from mathcoach.services.report_generator import ReportGenerator
from mathcoach.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class AnswerOutcome:
    feedback: str
    next_question: str | None
    completed: bool
    current_round: int
    total_rounds: int
    answer_correct: bool | None
    report: LearningReport | None = None


class DialogueEngine:
    def __init__(
        self,
        db: AsyncSession,
        collaborator: DialogueCollaborator,
        report_generator: ReportGenerator,
        jobs: BackgroundJobQueue | None = None,
        timeout_seconds: float = 30.0,
    ):
        self.store = SessionStore(db)
        self.collaborator = collaborator
        self.report_generator = report_generator
        self.jobs = jobs
        self.timeout_seconds = timeout_seconds
        self.behavior = BehaviorLogger(jobs)

    async def submit_answer(
        self,
        ctx: RequestContext,
        session_id: str,
        answer_text: str,
        expected_round: int,
    ) -> AnswerOutcome:
        answer = (answer_text or "").strip()
        if not answer:
            raise ValidationError("answer cannot be empty", "answer")

        session = await self.store.get_session(session_id, ctx.user_id)
        self._check_submittable(session, expected_round)

        current = session.current_round
        final = is_final_round(current, session.total_rounds)
        feedback, next_question, correct = await self._reply(session, answer, final)

        now = utc_now().isoformat()
        turns = [
            {
                "role": TurnRole.USER.value,
                "content": answer,
                "round": current,
                "timestamp": now,
            },
            {
                "role": TurnRole.ASSISTANT.value,
                "content": feedback,
                "round": current,
                "timestamp": now,
                "next_question": next_question,
            },
        ]
        updated = await self.store.record_round(
            session_id,
            ctx.user_id,
            expected_round=expected_round,
            revision=session.revision,
            turns=turns,
            complete=final,
        )

        self.behavior.record(
            ctx.user_id, BehaviorAction.QUESTION_ANSWERED,
            {"session_id": session_id, "round": current, "correct": correct},
        )
        submit_job(
            self.jobs, "history:refresh",
            refresh_history_entry, ctx.user_id, session_id,
        )

        report = None
        if final:
            self.behavior.record(
                ctx.user_id, BehaviorAction.SESSION_COMPLETED,
                {"session_id": session_id, "reason": updated.completion_reason},
            )
            report = await self.report_generator.generate_or_get_report(ctx, session_id)

        return AnswerOutcome(
            feedback=feedback,
            next_question=next_question,
            completed=updated.status == SessionStatus.COMPLETED.value,
            current_round=updated.current_round,
            total_rounds=updated.total_rounds,
            answer_correct=correct,
            report=report,
        )

    def _check_submittable(self, session: LearningSession, expected_round: int) -> None:
        if session.status == SessionStatus.ABANDONED.value:
            raise InvalidTransitionError(
                session.session_id, session.status, SessionStatus.ACTIVE.value,
            )
        if expected_round != session.current_round:
            raise StaleRoundError(
                expected_round, session.current_round,
                ErrorContext(session_id=session.session_id),
            )
        if session.status != SessionStatus.ACTIVE.value:
            raise InvalidTransitionError(
                session.session_id, session.status, SessionStatus.ACTIVE.value,
            )

    async def _reply(
        self, session: LearningSession, answer: str, final: bool,
    ) -> tuple[str, str | None, bool | None]:
        """(feedback, next_question, correct), from the collaborator or the fallback."""
        analysis = session.analysis or {}
        try:
            reply = await asyncio.wait_for(
                self.collaborator.reply(
                    problem_text=session.problem_text,
                    analysis=analysis,
                    dialogue=session.dialogue or [],
                    current_round=session.current_round,
                    total_rounds=session.total_rounds,
                    answer=answer,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            reason = f"timeout after {self.timeout_seconds}s"
        except CollaboratorError as e:
            reason = f"{e.error_type}: {e.message}"
        except Exception as e:
            logger.error(
                f"Unexpected dialogue collaborator failure: {e}",
                extra={"session_id": session.session_id},
                exc_info=True,
            )
            reason = "unexpected error"
        else:
            correct = reply.is_correct
            if correct is None:
                correct = check_answer(answer, analysis.get("final_answer")).is_correct
            if final:
                return reply.feedback, None, correct
            return (
                reply.feedback,
                reply.next_question or guidance_question(session.current_round),
                correct,
            )

        logger.warning(
            f"Dialogue collaborator unusable ({reason}), using templated reply",
            extra={
                "session_id": session.session_id,
                "round_number": session.current_round,
                "collaborator": "dialogue",
            },
        )
        feedback, next_question, check = fallback_reply(
            answer, analysis.get("final_answer"),
            session.current_round, session.total_rounds,
        )
        return feedback, next_question, check.is_correct

    async def abandon(
        self, ctx: RequestContext, session_id: str, note: str | None = None,
    ) -> LearningSession:
        """active → abandoned; repeated calls return the abandoned session unchanged."""
        before = await self.store.get_session(session_id, ctx.user_id)
        session = await self.store.abandon_session(session_id, ctx.user_id, note=note)
        if before.status != session.status:
            self.behavior.record(
                ctx.user_id, BehaviorAction.SESSION_ABANDONED,
                {"session_id": session_id, "round": before.current_round},
            )
            submit_job(
                self.jobs, "history:refresh",
                refresh_history_entry, ctx.user_id, session_id,
            )
            submit_job(self.jobs, "stats:recompute", recompute_user_stats, ctx.user_id)
        return session
