"""Sessions — create, browse, answer, abandon and report on tutoring sessions.

Invariants:
    - Every route is owner-scoped through RequestContext; a foreign session
      id answers 404 exactly like a missing one
    - User input is validated by Pydantic before reaching the route handler
    - Routes hold no business rules; services decide and persist

Design Decisions:
    - POST /report generates on first call and returns the stored report on
      every later call; GET /report never generates
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.api.dependencies import (
    get_dialogue_engine, get_problem_intake, get_report_generator,
    get_request_context,
)
from mathcoach.core.domain_types import SessionStatus
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure.database import get_db
from mathcoach.schemas.report import ReportResponse
from mathcoach.schemas.session import (
    AbandonRequest, AnswerResult, AnswerSubmit, SessionCreate,
    SessionListResponse, SessionResponse, SessionStartResponse, SessionSummary,
)
from mathcoach.services.dialogue_engine import DialogueEngine
from mathcoach.services.problem_intake import ProblemIntake
from mathcoach.services.report_generator import ReportGenerator
from mathcoach.services.session_store import SessionStore

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


@router.post(
    "", response_model=SessionStartResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    body: SessionCreate,
    ctx: RequestContext = Depends(get_request_context),
    intake: ProblemIntake = Depends(get_problem_intake),
):
    """Open a session for an already-known problem. Repeating the call is a no-op."""
    analysis = body.analysis.model_dump(exclude={"needs_retake"}) if body.analysis else None
    session, first_question = await intake.start_session(
        ctx, body.session_id, body.problem_text, analysis, body.image_ref,
    )
    return SessionStartResponse(
        session=SessionResponse.from_row(session),
        first_question=first_question,
    )


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    status_filter: SessionStatus | None = Query(None, alias="status"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    items, total, has_more = await SessionStore(db).list_sessions(
        ctx.user_id, page, page_size,
        status=status_filter, start_date=start_date, end_date=end_date,
    )
    return SessionListResponse(
        items=[SessionSummary.from_row(s) for s in items],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    session = await SessionStore(db).get_session(session_id, ctx.user_id)
    return SessionResponse.from_row(session)


@router.post("/{session_id}/answers", response_model=AnswerResult)
async def submit_answer(
    session_id: str,
    body: AnswerSubmit,
    ctx: RequestContext = Depends(get_request_context),
    engine: DialogueEngine = Depends(get_dialogue_engine),
):
    """One dialogue round. The final round also returns the learning report."""
    outcome = await engine.submit_answer(
        ctx, session_id, body.answer, body.expected_round,
    )
    return AnswerResult(
        feedback=outcome.feedback,
        next_question=outcome.next_question,
        completed=outcome.completed,
        current_round=outcome.current_round,
        total_rounds=outcome.total_rounds,
        answer_correct=outcome.answer_correct,
        report=ReportResponse.from_row(outcome.report) if outcome.report else None,
    )


@router.post("/{session_id}/abandon", response_model=SessionResponse)
async def abandon_session(
    session_id: str,
    body: AbandonRequest | None = None,
    ctx: RequestContext = Depends(get_request_context),
    engine: DialogueEngine = Depends(get_dialogue_engine),
):
    session = await engine.abandon(ctx, session_id, note=body.reason if body else None)
    return SessionResponse.from_row(session)


@router.post("/{session_id}/report", response_model=ReportResponse)
async def generate_report(
    session_id: str,
    ctx: RequestContext = Depends(get_request_context),
    generator: ReportGenerator = Depends(get_report_generator),
):
    report = await generator.generate_or_get_report(ctx, session_id)
    return ReportResponse.from_row(report)


@router.get("/{session_id}/report", response_model=ReportResponse)
async def get_report(
    session_id: str,
    ctx: RequestContext = Depends(get_request_context),
    generator: ReportGenerator = Depends(get_report_generator),
):
    report = await generator.get_report(ctx, session_id)
    return ReportResponse.from_row(report)
