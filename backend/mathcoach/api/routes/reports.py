"""Reports — the caller's stored learning reports, newest first, optionally by date."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.api.dependencies import get_request_context
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure.database import get_db
from mathcoach.schemas.report import ReportPage, ReportResponse
from mathcoach.services.report_archive import ReportArchive

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("", response_model=ReportPage)
async def list_reports(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    items, total, has_more = await ReportArchive(db).list_reports(
        ctx.user_id, page, page_size, start_date=start_date, end_date=end_date,
    )
    return ReportPage(
        items=[ReportResponse.from_row(r) for r in items],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )
