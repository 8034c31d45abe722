"""Background Jobs — side effects executed by the job queue, off the request path.

Invariants:
    - Every job opens its own DB session (the request session is closed by the time it runs)
    - Jobs raise on failure; retry and final logging belong to the queue
    - Jobs are idempotent or last-write-wins, so a retry never corrupts state

Design Decisions:
    - db_manager resolved at call time via get_db_manager(): tests swap the singleton
    - Plain module functions, not methods: the queue stores (fn, args) pairs
"""

import logging

from mathcoach.config import get_settings
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.database import get_db_manager
from mathcoach.models.behavior_event import BehaviorEvent
from mathcoach.services.learning_history import LearningHistoryService
from mathcoach.services.session_store import SessionStore
from mathcoach.services.stats_aggregator import StatsAggregator

logger = logging.getLogger(__name__)


async def write_behavior_event(
    owner: str, action: str, data: dict | None = None, page: str | None = None,
) -> None:
    async with get_db_manager().session() as db:
        db.add(BehaviorEvent(owner_id=owner, action=action, data=data, page=page))
        await db.commit()


async def refresh_history_entry(
    owner: str, session_id: str, score: int | None = None,
) -> None:
    settings = get_settings()
    async with get_db_manager().session() as db:
        session = await SessionStore(db).get_session(session_id, owner)
        await LearningHistoryService(db, cap=settings.history_cap).record_session(
            owner, session, score=score,
        )


async def recompute_user_stats(owner: str) -> None:
    settings = get_settings()
    async with get_db_manager().session() as db:
        stats = await StatsAggregator(db, settings.stats_timezone).recompute_stats(owner)
    logger.info(
        f"Stats recomputed: {stats['total_questions']} sessions",
        extra={"user_id": owner},
    )


def submit_job(queue: BackgroundJobQueue | None, name: str, fn, *args, **kwargs) -> bool:
    """Submit if a queue is available; a missing queue drops the job with a log line."""
    if queue is None:
        logger.warning(f"No job queue, job {name} dropped", extra={"job_name": name})
        return False
    return queue.submit(name, fn, *args, **kwargs)
