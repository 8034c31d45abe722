"""History — the owner's capped list of recent sessions, newest first."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.api.dependencies import get_request_context
from mathcoach.config import get_settings
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure.database import get_db
from mathcoach.schemas.user import HistoryPage
from mathcoach.services.learning_history import LearningHistoryService

router = APIRouter(prefix="/api/v1/history", tags=["history"])


@router.get("", response_model=HistoryPage)
async def list_history(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    service = LearningHistoryService(db, cap=get_settings().history_cap)
    return await service.list_history(ctx.user_id, page, page_size)
