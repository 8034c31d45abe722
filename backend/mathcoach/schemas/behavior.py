"""Behavior Schemas — client-reported behavior events and the per-action rollup."""

from pydantic import BaseModel, Field


class BehaviorRecord(BaseModel):
    action: str = Field(pattern=r"^[a-z][a-z0-9_]{0,49}$")
    page: str | None = Field(None, max_length=100)
    data: dict | None = None


class BehaviorAccepted(BaseModel):
    """accepted=False means the event was dropped; the client does not retry."""
    accepted: bool


class BehaviorSummary(BaseModel):
    total: int
    by_action: dict[str, int]
