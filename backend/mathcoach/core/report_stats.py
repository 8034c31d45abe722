"""Report Stats — pure per-session statistics and the deterministic fallback report.

Invariants:
    - Inputs are plain dialogue turns (dicts) and timestamps, no IO
    - participation and depth are integers in [0, 100]
    - build_fallback_report never raises and fills every report field
    - Level thresholds: >=85 优秀, >=70 良好, >=60 及格, else 需要改进

Design Decisions:
    - Depth scales the expected answer length with the turn index (20 + 10*i):
      later answers are expected to be longer
    - Time score peaks at 10 minutes and drops 2 points per extra minute
"""

from datetime import datetime

from mathcoach.core import feedback_templates as tpl
from mathcoach.core.domain_types import TurnRole
from mathcoach.core.time_utils import whole_minutes

PARTICIPATION_WEIGHT = 0.3
DEPTH_WEIGHT = 0.4
TIME_WEIGHT = 0.3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def user_turns(dialogue: list[dict]) -> list[dict]:
    return [t for t in dialogue if t.get("role") == TurnRole.USER.value]


def compute_basic_stats(
    dialogue: list[dict],
    start_time: datetime,
    end_time: datetime,
    total_rounds: int,
) -> dict:
    """Compute learning time, participation and depth for one session. Pure."""
    answers = user_turns(dialogue)
    lengths = [len(t.get("content", "")) for t in answers]
    total_answers = len(answers)

    avg_length = round(sum(lengths) / total_answers) if total_answers else 0
    participation = (
        round(min(100.0, total_answers / total_rounds * 100)) if total_rounds > 0 else 0
    )
    if total_answers:
        per_turn = [
            min(100.0, length / (20 + index * 10) * 100)
            for index, length in enumerate(lengths)
        ]
        depth = round(sum(per_turn) / total_answers)
    else:
        depth = 0

    return {
        "learning_minutes": whole_minutes(start_time, end_time),
        "total_answers": total_answers,
        "avg_answer_length": avg_length,
        "participation_score": participation,
        "depth_score": depth,
    }


def time_score(learning_minutes: int) -> float:
    return _clamp(100 - (learning_minutes - 10) * 2, 0, 100)


def performance_level(score: int) -> str:
    if score >= 85:
        return "优秀"
    if score >= 70:
        return "良好"
    if score >= 60:
        return "及格"
    return "需要改进"


def fallback_score(stats: dict) -> int:
    return round(
        stats["participation_score"] * PARTICIPATION_WEIGHT
        + stats["depth_score"] * DEPTH_WEIGHT
        + time_score(stats["learning_minutes"]) * TIME_WEIGHT
    )


def _strengths_and_improvements(stats: dict) -> tuple[list[str], list[str]]:
    strengths: list[str] = []
    improvements: list[str] = []

    if stats["participation_score"] >= 80:
        strengths.append(tpl.STRENGTH_PARTICIPATION)
    else:
        improvements.append(tpl.IMPROVE_PARTICIPATION)

    if stats["depth_score"] >= 70:
        strengths.append(tpl.STRENGTH_DEPTH)
    else:
        improvements.append(tpl.IMPROVE_DEPTH)

    if stats["learning_minutes"] <= 15:
        strengths.append(tpl.STRENGTH_EFFICIENCY)
    elif stats["learning_minutes"] > 30:
        improvements.append(tpl.IMPROVE_EFFICIENCY)

    return (
        strengths or [tpl.DEFAULT_STRENGTH],
        improvements or [tpl.DEFAULT_IMPROVEMENT],
    )


def _thinking_score(raw: float) -> int:
    return int(_clamp(round(raw), 1, 5))


def build_fallback_report(stats: dict, analysis: dict | None) -> dict:
    """Deterministic report derived only from basic stats and the analysis."""
    score = int(_clamp(fallback_score(stats), 0, 100))
    level = performance_level(score)
    strengths, improvements = _strengths_and_improvements(stats)
    knowledge_name = (analysis or {}).get("key_relation") or tpl.DEFAULT_KNOWLEDGE_POINT

    return {
        "score": score,
        "level": level,
        "strengths": strengths,
        "improvements": improvements,
        "thinking": {
            "logical_thinking": _thinking_score(stats["depth_score"] / 20),
            "problem_solving": _thinking_score(stats["participation_score"] / 20),
            "communication": _thinking_score(stats["avg_answer_length"] / 10),
            "creativity": 3,
        },
        "knowledge_points": [
            {
                "name": knowledge_name,
                "mastery": max(50, score),
                "description": tpl.KNOWLEDGE_DESCRIPTION.format(level=level),
            },
        ],
        "suggestions": list(tpl.REPORT_SUGGESTIONS),
        "next_steps": list(tpl.REPORT_NEXT_STEPS),
    }
