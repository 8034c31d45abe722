"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId is issued by the identity collaborator, never chosen by the client
    - SessionId is client-generated and globally unique per attempt
    - All valid states encoded as Enums — no raw string matching
    - DEFAULT_TOTAL_ROUNDS (3) is the single source of truth for dialogue length

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON columns without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)
SessionId = NewType("SessionId", str)


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_TOTAL_ROUNDS: int = 3
HISTORY_CAP: int = 50
NO_ACHIEVEMENT: str = "暂无成就"


# ─── Enums ───────────────────────────────────────────────────────

class SessionStatus(str, Enum):
    """Session lifecycle states — maps to DB `status` column.

    Only ACTIVE transitions; COMPLETED and ABANDONED are terminal.
    """
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class TurnRole(str, Enum):
    """Author of a dialogue turn."""
    USER = "user"
    ASSISTANT = "assistant"


class CompletionReason(str, Enum):
    """Why a session left the active state."""
    ROUNDS_EXHAUSTED = "rounds_exhausted"
    USER_COMPLETED = "user_completed"
    USER_ABANDONED = "user_abandoned"


class ReportSource(str, Enum):
    """Which path produced a stored report."""
    COLLABORATOR = "collaborator"
    FALLBACK = "fallback"


class AnswerQuality(str, Enum):
    """Rule-based grade of a single answer."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class BehaviorAction(str, Enum):
    """Behavior events emitted by the core."""
    QUESTION_ANALYZED = "question_analyzed"
    SESSION_CREATED = "session_created"
    QUESTION_ANSWERED = "question_answered"
    SESSION_COMPLETED = "session_completed"
    SESSION_ABANDONED = "session_abandoned"
    REPORT_GENERATED = "report_generated"
    PROFILE_UPDATED = "profile_updated"
