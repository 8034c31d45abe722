"""Stats Aggregator — recompute a user's learning statistics from sessions and reports.

Invariants:
    - recompute_stats reads everything it needs and delegates the math to
      core/learning_stats.compute_user_stats (pure)
    - Result overwrites user_stats wholesale and syncs users.learning_stats
    - Concurrent recomputes converge (last write wins over identical inputs)

Design Decisions:
    - Upsert for both tables: the user row may not exist yet when the first
      report lands (identity resolution is optional for stats)
"""

from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.learning_stats import SessionSnapshot, compute_user_stats
from mathcoach.core.time_utils import local_date, utc_now
from mathcoach.infrastructure.upsert import upsert_row
from mathcoach.models.learning_report import LearningReport
from mathcoach.models.learning_session import LearningSession
from mathcoach.models.user import User
from mathcoach.models.user_stats import UserStats
from mathcoach.schemas.user import UserStatsResponse

STATS_FIELDS = tuple(UserStatsResponse.model_fields)


def _last_activity(dialogue: list[dict]) -> datetime | None:
    if not dialogue:
        return None
    stamp = dialogue[-1].get("timestamp")
    if not stamp:
        return None
    try:
        return datetime.fromisoformat(stamp)
    except ValueError:
        return None


def snapshot_of(row: LearningSession) -> SessionSnapshot:
    return SessionSnapshot(
        status=row.status,
        start_time=row.start_time,
        end_time=row.end_time,
        last_activity=_last_activity(row.dialogue or []),
    )


class StatsAggregator:
    def __init__(self, db: AsyncSession, tz_name: str = "Asia/Shanghai"):
        self.db = db
        self.tz_name = tz_name

    async def recompute_stats(self, owner: str, today: date | None = None) -> dict:
        sessions = (await self.db.execute(
            select(LearningSession).where(LearningSession.owner_id == owner),
        )).scalars().all()
        scores = (await self.db.execute(
            select(LearningReport.score).where(LearningReport.owner_id == owner),
        )).scalars().all()

        stats = compute_user_stats(
            [snapshot_of(s) for s in sessions],
            list(scores),
            today or local_date(utc_now(), self.tz_name),
            self.tz_name,
        )
        now = utc_now()
        await upsert_row(
            self.db, UserStats,
            {"owner_id": owner, **stats, "updated_at": now},
            conflict_columns=["owner_id"],
            update_columns=[*STATS_FIELDS, "updated_at"],
        )
        await upsert_row(
            self.db, User,
            {
                "id": owner,
                "settings": {},
                "learning_stats": stats,
                "achievements": [],
                "created_at": now,
                "updated_at": now,
            },
            conflict_columns=["id"],
            update_columns=["learning_stats", "updated_at"],
        )
        await self.db.commit()
        return stats

    async def get_stats(self, owner: str) -> dict:
        row = (await self.db.execute(
            select(UserStats)
            .where(UserStats.owner_id == owner)
            .execution_options(populate_existing=True),
        )).scalar_one_or_none()
        if row is None:
            return UserStatsResponse().model_dump()
        return {field: getattr(row, field) for field in STATS_FIELDS}
