"""Session Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - SessionCreate.problem_text: 1-10000 chars, stripped, non-empty
    - AnswerSubmit.answer: 1-5000 chars, stripped, non-empty; expected_round >= 1
    - session_id: 1-128 chars of [A-Za-z0-9_-]

Design Decisions:
    - field_validator for side-effect-free transforms (strip) — keeps models pure
    - Response models built from ORM rows via from_row(): one mapping, reused by routes
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from mathcoach.core.time_utils import as_utc
from mathcoach.schemas.analysis import ProblemAnalysis
from mathcoach.schemas.report import ReportResponse

SESSION_ID_PATTERN = r"^[A-Za-z0-9_\-]{1,128}$"


def _strip_non_empty(v: str, name: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{name} cannot be empty or whitespace")
    return v


class SessionCreate(BaseModel):
    """Create a session from an already-known problem (no photo)."""
    session_id: str = Field(pattern=SESSION_ID_PATTERN)
    problem_text: str = Field(min_length=1, max_length=10_000)
    analysis: ProblemAnalysis | None = None
    image_ref: str | None = Field(None, max_length=512)

    @field_validator("problem_text")
    @classmethod
    def strip_problem(cls, v: str) -> str:
        return _strip_non_empty(v, "problem_text")


class DialogueTurn(BaseModel):
    role: str
    content: str
    round: int
    timestamp: str
    next_question: str | None = None


class SessionResponse(BaseModel):
    """Session response — public-facing session data."""
    session_id: str
    problem_text: str
    analysis: dict
    image_ref: str | None = None
    dialogue: list[DialogueTurn]
    current_round: int
    total_rounds: int
    status: str
    start_time: datetime
    end_time: datetime | None = None
    completion_reason: str | None = None
    abandon_note: str | None = None
    revision: int

    @classmethod
    def from_row(cls, row) -> "SessionResponse":
        return cls(
            session_id=row.session_id,
            problem_text=row.problem_text,
            analysis=row.analysis or {},
            image_ref=row.image_ref,
            dialogue=row.dialogue or [],
            current_round=row.current_round,
            total_rounds=row.total_rounds,
            status=row.status,
            start_time=as_utc(row.start_time),
            end_time=as_utc(row.end_time) if row.end_time else None,
            completion_reason=row.completion_reason,
            abandon_note=row.abandon_note,
            revision=row.revision,
        )


class SessionSummary(BaseModel):
    session_id: str
    problem_text: str
    status: str
    current_round: int
    total_rounds: int
    start_time: datetime
    end_time: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "SessionSummary":
        problem = row.problem_text
        return cls(
            session_id=row.session_id,
            problem_text=problem[:200] + ("..." if len(problem) > 200 else ""),
            status=row.status,
            current_round=row.current_round,
            total_rounds=row.total_rounds,
            start_time=as_utc(row.start_time),
            end_time=as_utc(row.end_time) if row.end_time else None,
        )


class SessionListResponse(BaseModel):
    items: list[SessionSummary]
    total: int
    page: int
    page_size: int
    has_more: bool


class AnswerSubmit(BaseModel):
    answer: str = Field(min_length=1, max_length=5_000)
    expected_round: int = Field(ge=1)

    @field_validator("answer")
    @classmethod
    def strip_answer(cls, v: str) -> str:
        return _strip_non_empty(v, "answer")


class AnswerResult(BaseModel):
    feedback: str
    next_question: str | None = None
    completed: bool
    current_round: int
    total_rounds: int
    answer_correct: bool | None = None
    report: ReportResponse | None = None


class AbandonRequest(BaseModel):
    reason: str | None = Field(None, max_length=200)

    @field_validator("reason")
    @classmethod
    def blank_reason_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class SessionStartResponse(BaseModel):
    session: SessionResponse
    first_question: str
