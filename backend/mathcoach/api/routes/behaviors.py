"""Behaviors — client-reported usage events and the caller's per-action rollup.

Invariants:
    - POST answers 202 once the body validates, whether or not the event is kept;
      a missing, stopped or full queue and a failing write never reach the caller
    - The owner always comes from the token, never from the body
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.api.dependencies import get_job_queue, get_request_context
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.database import get_db
from mathcoach.schemas.behavior import BehaviorAccepted, BehaviorRecord, BehaviorSummary
from mathcoach.services.behavior_logger import BehaviorLogger, count_by_action

router = APIRouter(prefix="/api/v1/behaviors", tags=["behaviors"])


@router.post("", response_model=BehaviorAccepted, status_code=status.HTTP_202_ACCEPTED)
async def record_behavior(
    body: BehaviorRecord,
    ctx: RequestContext = Depends(get_request_context),
    jobs: BackgroundJobQueue | None = Depends(get_job_queue),
):
    accepted = BehaviorLogger(jobs).record_client(
        ctx.user_id, body.action, body.data, body.page,
    )
    return BehaviorAccepted(accepted=accepted)


@router.get("/summary", response_model=BehaviorSummary)
async def behavior_summary(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    counts = await count_by_action(db, ctx.user_id)
    return BehaviorSummary(total=sum(counts.values()), by_action=counts)
