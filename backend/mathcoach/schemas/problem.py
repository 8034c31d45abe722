"""Problem Intake Schemas — photo upload request and analysis result."""

from pydantic import BaseModel, Field

from mathcoach.schemas.session import SESSION_ID_PATTERN


class ProblemAnalyzeRequest(BaseModel):
    session_id: str = Field(pattern=SESSION_ID_PATTERN)
    image_base64: str = Field(min_length=1)
    media_type: str = Field(
        "image/jpeg", pattern=r"^image/(jpeg|png|webp|gif)$",
    )


class ProblemAnalyzeResponse(BaseModel):
    """needs_retake=True: photo unreadable, no session was created."""
    needs_retake: bool
    session_id: str | None = None
    problem_text: str
    analysis: dict
    first_question: str | None = None
    current_round: int | None = None
    total_rounds: int | None = None
