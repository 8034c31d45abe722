"""User Schemas — identity resolution, profile edits, stats and history pages."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from mathcoach.core.time_utils import as_utc


# --- Identity -----------------------------------------------------------------

class IdentityResolveRequest(BaseModel):
    credential: str = Field(min_length=1, max_length=512)


class IdentityResolveResponse(BaseModel):
    """anonymous=True means the provider failed; the client keeps data locally."""
    anonymous: bool
    user_id: str | None = None
    access_token: str | None = None


# --- Profile ------------------------------------------------------------------

class ProfileUpdate(BaseModel):
    nickname: str | None = Field(None, max_length=64)
    avatar_url: str | None = Field(None, max_length=512)
    settings: dict | None = None

    @field_validator("nickname")
    @classmethod
    def strip_nickname(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("nickname cannot be empty or whitespace")
        return v


class UserStatsResponse(BaseModel):
    total_questions: int = 0
    completed_sessions: int = 0
    total_learning_minutes: int = 0
    average_score: int = 0
    best_score: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_days: int = 0
    first_learning_date: str | None = None
    last_learning_date: str | None = None
    latest_achievement: str = "暂无成就"


class ProfileResponse(BaseModel):
    user_id: str
    nickname: str | None = None
    avatar_url: str | None = None
    settings: dict
    learning_stats: UserStatsResponse
    created_at: datetime

    @classmethod
    def from_row(cls, row) -> "ProfileResponse":
        return cls(
            user_id=row.id,
            nickname=row.nickname,
            avatar_url=row.avatar_url,
            settings=row.settings or {},
            learning_stats=UserStatsResponse(**(row.learning_stats or {})),
            created_at=as_utc(row.created_at),
        )


# --- History ------------------------------------------------------------------

class HistoryEntry(BaseModel):
    session_id: str
    summary: str
    status: str
    current_round: int
    total_rounds: int
    score: int | None = None
    timestamp: str


class HistoryPage(BaseModel):
    items: list[HistoryEntry]
    total: int
    total_sessions: int
    page: int
    page_size: int
    has_more: bool
