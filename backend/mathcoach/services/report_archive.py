"""Report Archive — paginated, owner-scoped listing of stored learning reports.

Invariants:
    - Only the owner's reports are ever returned
    - Newest first by created_at; end_date is inclusive through that UTC day
    - Read-only: never generates, never calls a collaborator
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.time_utils import end_of_day, start_of_day
from mathcoach.models.learning_report import LearningReport
from mathcoach.services.session_store import MAX_PAGE_SIZE


class ReportArchive:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_reports(
        self,
        owner: str,
        page: int = 1,
        page_size: int = 10,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[list[LearningReport], int, bool]:
        page = max(1, page)
        page_size = max(1, min(MAX_PAGE_SIZE, page_size))

        filters = [LearningReport.owner_id == owner]
        if start_date is not None:
            filters.append(LearningReport.created_at >= start_of_day(start_date))
        if end_date is not None:
            filters.append(LearningReport.created_at <= end_of_day(end_date))

        total = await self.db.scalar(
            select(func.count()).select_from(LearningReport).where(*filters),
        ) or 0
        result = await self.db.execute(
            select(LearningReport)
            .where(*filters)
            .order_by(LearningReport.created_at.desc(), LearningReport.session_id)
            .limit(page_size)
            .offset((page - 1) * page_size),
        )
        items = list(result.scalars().all())
        return items, total, page * page_size < total
