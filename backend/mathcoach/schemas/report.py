"""Report Schemas — public shape of a stored learning report."""

from datetime import datetime

from pydantic import BaseModel

from mathcoach.core.time_utils import as_utc


class ReportResponse(BaseModel):
    session_id: str
    score: int
    level: str
    source: str
    strengths: list[str]
    improvements: list[str]
    thinking: dict
    knowledge_points: list[dict]
    suggestions: list[str]
    next_steps: list[str]
    basic_stats: dict
    created_at: datetime

    @classmethod
    def from_row(cls, row) -> "ReportResponse":
        payload = row.payload or {}
        return cls(
            session_id=row.session_id,
            score=row.score,
            level=row.level,
            source=row.source,
            strengths=payload.get("strengths", []),
            improvements=payload.get("improvements", []),
            thinking=payload.get("thinking", {}),
            knowledge_points=payload.get("knowledge_points", []),
            suggestions=payload.get("suggestions", []),
            next_steps=payload.get("next_steps", []),
            basic_stats=payload.get("basic_stats", {}),
            created_at=as_utc(row.created_at),
        )


class ReportPage(BaseModel):
    items: list[ReportResponse]
    total: int
    page: int
    page_size: int
    has_more: bool
