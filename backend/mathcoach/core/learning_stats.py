"""Learning Stats — pure per-user aggregation over sessions and reports.

Invariants:
    - compute_user_stats is deterministic given (sessions, scores, today, tz)
    - Active days are local calendar dates of session start times
    - current_streak counts back from today; a run ending yesterday still counts
    - latest_achievement is the first match of a fixed ordered rule list

Design Decisions:
    - Sessions passed as plain snapshots (SessionSnapshot), not ORM rows:
      keeps this module free of SQLAlchemy
    - Average/best score taken from stored reports only; sessions without a
      report do not pull the average down
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from mathcoach.core.domain_types import NO_ACHIEVEMENT, SessionStatus
from mathcoach.core.time_utils import local_date, whole_minutes

# (metric, threshold, label) in priority order
ACHIEVEMENT_RULES: tuple[tuple[str, float, str], ...] = (
    ("total_learning_minutes", 60, "⏰ 专注学习"),
    ("total_questions", 10, "📚 勤学好问"),
    ("average_score", 100, "⭐ 完美表现"),
    ("current_streak", 7, "🔥 坚持不懈"),
    ("total_questions", 1, "🎯 初次尝试"),
)


@dataclass(frozen=True)
class SessionSnapshot:
    """Minimal view of a session needed for aggregation."""
    status: str
    start_time: datetime
    end_time: datetime | None = None
    last_activity: datetime | None = None


def session_minutes(snapshot: SessionSnapshot) -> int:
    """Minutes spent: end - start, or last turn - start while unfinished."""
    end = snapshot.end_time or snapshot.last_activity
    if end is None:
        return 0
    return whole_minutes(snapshot.start_time, end)


def calculate_streak(active_days: set[date], today: date) -> int:
    """Consecutive active days ending today, or ending yesterday."""
    if today in active_days:
        cursor = today
    elif today - timedelta(days=1) in active_days:
        cursor = today - timedelta(days=1)
    else:
        return 0
    streak = 0
    while cursor in active_days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def longest_streak(active_days: set[date]) -> int:
    best = 0
    for day in active_days:
        if day - timedelta(days=1) in active_days:
            continue
        length = 1
        while day + timedelta(days=length) in active_days:
            length += 1
        best = max(best, length)
    return best


def latest_achievement(stats: dict) -> str:
    for metric, threshold, label in ACHIEVEMENT_RULES:
        if stats.get(metric, 0) >= threshold:
            return label
    return NO_ACHIEVEMENT


def compute_user_stats(
    sessions: list[SessionSnapshot],
    report_scores: list[int],
    today: date,
    tz_name: str,
) -> dict:
    """Aggregate UserStats fields. Pure, no IO."""
    active_days = {local_date(s.start_time, tz_name) for s in sessions}
    ordered_days = sorted(active_days)

    stats = {
        "total_questions": len(sessions),
        "completed_sessions": sum(
            1 for s in sessions if s.status == SessionStatus.COMPLETED.value
        ),
        "total_learning_minutes": sum(session_minutes(s) for s in sessions),
        "average_score": (
            round(sum(report_scores) / len(report_scores)) if report_scores else 0
        ),
        "best_score": max(report_scores) if report_scores else 0,
        "current_streak": calculate_streak(active_days, today),
        "longest_streak": longest_streak(active_days),
        "total_days": len(active_days),
        "first_learning_date": ordered_days[0].isoformat() if ordered_days else None,
        "last_learning_date": ordered_days[-1].isoformat() if ordered_days else None,
    }
    stats["latest_achievement"] = latest_achievement(stats)
    return stats
