"""Behavior Logger — fire-and-forget behavior events through the job queue.

Invariants:
    - record() and record_client() never raise and never await IO
    - A missing, stopped or full queue drops the event with a log line
    - Server-side events use BehaviorAction values; client events carry any
      action name the route has already validated
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.domain_types import BehaviorAction
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.models.behavior_event import BehaviorEvent
from mathcoach.services.jobs import submit_job, write_behavior_event


class BehaviorLogger:
    def __init__(self, queue: BackgroundJobQueue | None):
        self.queue = queue

    def record(
        self,
        owner: str,
        action: BehaviorAction,
        data: dict | None = None,
        page: str | None = None,
    ) -> bool:
        return self.record_client(owner, action.value, data, page)

    def record_client(
        self,
        owner: str,
        action: str,
        data: dict | None = None,
        page: str | None = None,
    ) -> bool:
        return submit_job(
            self.queue, f"behavior:{action}",
            write_behavior_event, owner, action, data, page,
        )


async def count_by_action(db: AsyncSession, owner: str) -> dict[str, int]:
    """Per-action event counts for one owner."""
    result = await db.execute(
        select(BehaviorEvent.action, func.count())
        .where(BehaviorEvent.owner_id == owner)
        .group_by(BehaviorEvent.action),
    )
    return {action: count for action, count in result.all()}
