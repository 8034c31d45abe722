"""Problem Intake — photo upload → validated analysis → new session + first question.

Invariants:
    - Invalid base64 or an oversized image → ValidationError before any blob
      write or collaborator call
    - A retake placeholder analysis (unreadable photo) creates no session
    - Session creation goes through SessionStore.create_session (create-if-absent)

Design Decisions:
    - Blob stored before analysis so the session can reference the original photo
    - start_session shared with the direct "known problem text" route: one place
      that creates sessions and emits their side effects
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core import feedback_templates as tpl
from mathcoach.core.domain_types import DEFAULT_TOTAL_ROUNDS, BehaviorAction
from mathcoach.core.errors import CollaboratorError, ErrorContext, ValidationError
from mathcoach.core.repository_protocols import AnalysisCollaborator, BlobStore
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.models.learning_session import LearningSession
from mathcoach.schemas.analysis import ProblemAnalysis
from mathcoach.services.behavior_logger import BehaviorLogger
from mathcoach.services.jobs import refresh_history_entry, submit_job
from mathcoach.services.session_store import SessionStore

logger = logging.getLogger(__name__)

_DATA_URL_MARKER = ";base64,"


@dataclass
class IntakeResult:
    analysis: ProblemAnalysis
    session: LearningSession | None
    first_question: str | None

    @property
    def needs_retake(self) -> bool:
        return self.analysis.needs_retake


def first_question_of(analysis: dict) -> str:
    questions = analysis.get("questions") or []
    return questions[0] if questions else tpl.DEFAULT_FIRST_QUESTION


def decode_image(image_base64: str, max_bytes: int) -> bytes:
    """Decode a base64 (or data-URL) payload and enforce the size limit."""
    payload = image_base64.strip()
    if _DATA_URL_MARKER in payload[:100]:
        payload = payload.split(_DATA_URL_MARKER, 1)[1]
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("image is not valid base64", "image_base64")
    if not data:
        raise ValidationError("image is empty", "image_base64")
    if len(data) > max_bytes:
        raise ValidationError(
            f"image is {len(data)} bytes; the limit is {max_bytes} bytes",
            "image_base64",
        )
    return data


class ProblemIntake:
    def __init__(
        self,
        db: AsyncSession,
        analyzer: AnalysisCollaborator,
        blob_store: BlobStore,
        jobs: BackgroundJobQueue | None = None,
        *,
        max_image_bytes: int = 900 * 1024,
        total_rounds: int = DEFAULT_TOTAL_ROUNDS,
        timeout_seconds: float = 30.0,
    ):
        self.store = SessionStore(db)
        self.analyzer = analyzer
        self.blob_store = blob_store
        self.jobs = jobs
        self.max_image_bytes = max_image_bytes
        self.total_rounds = total_rounds
        self.timeout_seconds = timeout_seconds
        self.behavior = BehaviorLogger(jobs)

    async def analyze_upload(
        self,
        ctx: RequestContext,
        session_id: str,
        image_base64: str,
        media_type: str = "image/jpeg",
    ) -> IntakeResult:
        image = decode_image(image_base64, self.max_image_bytes)
        image_ref = await self.blob_store.put(image, media_type)

        try:
            analysis = await asyncio.wait_for(
                self.analyzer.analyze(image, media_type),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise CollaboratorError(
                f"No analysis within {self.timeout_seconds}s",
                "analysis", "timeout",
                context=ErrorContext(session_id=session_id, user_id=ctx.user_id),
            )

        self.behavior.record(
            ctx.user_id, BehaviorAction.QUESTION_ANALYZED,
            {
                "session_id": session_id,
                "needs_retake": analysis.needs_retake,
                "difficulty": analysis.difficulty,
            },
        )
        if analysis.needs_retake:
            logger.info(
                "Photo unreadable, asking for retake",
                extra={"session_id": session_id, "user_id": ctx.user_id},
            )
            return IntakeResult(analysis=analysis, session=None, first_question=None)

        session, first_question = await self.start_session(
            ctx, session_id, analysis.problem_text,
            analysis.model_dump(exclude={"needs_retake"}), image_ref,
        )
        return IntakeResult(analysis=analysis, session=session, first_question=first_question)

    async def start_session(
        self,
        ctx: RequestContext,
        session_id: str,
        problem_text: str,
        analysis: dict | None = None,
        image_ref: str | None = None,
    ) -> tuple[LearningSession, str]:
        session, created = await self.store.create_session(
            ctx.user_id, session_id, problem_text,
            analysis=analysis, image_ref=image_ref, total_rounds=self.total_rounds,
        )
        if created:
            self.behavior.record(
                ctx.user_id, BehaviorAction.SESSION_CREATED, {"session_id": session_id},
            )
            submit_job(
                self.jobs, "history:refresh",
                refresh_history_entry, ctx.user_id, session_id,
            )
        return session, first_question_of(session.analysis or {})
