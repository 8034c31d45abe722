"""Stats Aggregator — recompute from sessions and reports, persisted to both tables."""

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select, update

from mathcoach.core.domain_types import NO_ACHIEVEMENT
from mathcoach.models.learning_report import LearningReport
from mathcoach.models.learning_session import LearningSession
from mathcoach.models.user import User
from mathcoach.services.session_store import SessionStore
from mathcoach.services.stats_aggregator import StatsAggregator

TODAY = date(2026, 3, 10)


async def _session_on(db, session_id: str, day: date, minutes: int, status: str = "completed"):
    await SessionStore(db).create_session("user-a", session_id, "problem")
    start = datetime(day.year, day.month, day.day, 2, tzinfo=timezone.utc)
    await db.execute(
        update(LearningSession)
        .where(LearningSession.session_id == session_id)
        .values(
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            status=status,
        ),
    )
    await db.commit()


def _report(session_id: str, score: int) -> LearningReport:
    return LearningReport(
        session_id=session_id, owner_id="user-a", score=score,
        level="良好", source="fallback", payload={},
    )


async def test_stats_for_new_user_are_zero(test_db):
    aggregator = StatsAggregator(test_db)
    stats = await aggregator.get_stats("nobody")
    assert stats["total_questions"] == 0
    assert stats["latest_achievement"] == NO_ACHIEVEMENT


async def test_recompute_aggregates_and_persists(test_db):
    await _session_on(test_db, "s1", TODAY, 30)
    await _session_on(test_db, "s2", TODAY - timedelta(days=1), 40)
    await _session_on(test_db, "s3", TODAY - timedelta(days=5), 5, status="abandoned")
    test_db.add_all([_report("s1", 90), _report("s2", 71)])
    await test_db.commit()

    stats = await StatsAggregator(test_db).recompute_stats("user-a", today=TODAY)

    assert stats["total_questions"] == 3
    assert stats["completed_sessions"] == 2
    assert stats["total_learning_minutes"] == 75
    assert stats["average_score"] == 80
    assert stats["best_score"] == 90
    assert stats["current_streak"] == 2
    assert stats["longest_streak"] == 2
    assert stats["total_days"] == 3
    assert stats["latest_achievement"] == "⏰ 专注学习"

    stored = await StatsAggregator(test_db).get_stats("user-a")
    assert stored == stats

    user = (await test_db.execute(
        select(User).where(User.id == "user-a").execution_options(populate_existing=True),
    )).scalar_one()
    assert user.learning_stats["best_score"] == 90


async def test_recompute_overwrites_previous_values(test_db):
    await _session_on(test_db, "s1", TODAY, 10)
    aggregator = StatsAggregator(test_db)
    await aggregator.recompute_stats("user-a", today=TODAY)
    await _session_on(test_db, "s2", TODAY, 10)
    stats = await aggregator.recompute_stats("user-a", today=TODAY)
    assert stats["total_questions"] == 2
    assert (await aggregator.get_stats("user-a"))["total_questions"] == 2


async def test_recompute_keeps_existing_profile_fields(test_db):
    test_db.add(User(id="user-a", nickname="小明", settings={"sound": True}))
    await test_db.commit()
    await _session_on(test_db, "s1", TODAY, 10)
    await StatsAggregator(test_db).recompute_stats("user-a", today=TODAY)

    user = (await test_db.execute(
        select(User).where(User.id == "user-a").execution_options(populate_existing=True),
    )).scalar_one()
    assert user.nickname == "小明"
    assert user.settings == {"sound": True}
    assert user.learning_stats["total_questions"] == 1


async def test_streak_that_ended_two_days_ago_is_zero(test_db):
    await _session_on(test_db, "s1", TODAY - timedelta(days=2), 10)
    stats = await StatsAggregator(test_db).recompute_stats("user-a", today=TODAY)
    assert stats["current_streak"] == 0
    assert stats["longest_streak"] == 1
