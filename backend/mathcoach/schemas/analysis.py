"""Collaborator Schemas — strict validation of every model payload (parse, don't trust).

Invariants:
    - ProblemAnalysis.difficulty always within 1-5 (clamped, not rejected)
    - key_numbers are strings, whatever the model emitted
    - DialogueReply.feedback is non-empty
    - ReportEvaluation: score int 0-100, thinking scores int 1-5, mastery 0-100;
      out-of-range values are rejected so the caller falls back
    - ReportEvaluation.level is one of the four fixed labels (derived from score if not)

Design Decisions:
    - AliasChoices accept both snake_case and the camelCase keys models tend to emit
    - extra="ignore": unknown keys from the model are dropped, not errors
    - Clamp where the value is still meaningful (difficulty); reject where a bad
      value means the whole evaluation is untrustworthy (score)
"""

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator,
)

from mathcoach.core.report_stats import performance_level

LEVELS = ("优秀", "良好", "及格", "需要改进")


def _str_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    return [str(v).strip() for v in value if str(v).strip()]


class _CollaboratorModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProblemAnalysis(_CollaboratorModel):
    """Structured description of a photographed problem."""
    problem_text: str = Field(
        min_length=1,
        validation_alias=AliasChoices("problem_text", "question_text", "questionText"),
    )
    grade_level: str | None = Field(
        None, validation_alias=AliasChoices("grade_level", "gradeLevel"),
    )
    difficulty: int = 3
    key_numbers: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("key_numbers", "keyNumbers"),
    )
    key_relation: str | None = Field(
        None, validation_alias=AliasChoices("key_relation", "keyRelation"),
    )
    final_answer: str | None = Field(
        None, validation_alias=AliasChoices("final_answer", "finalAnswer"),
    )
    questions: list[str] = Field(default_factory=list)
    solution_steps: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("solution_steps", "solutionSteps"),
    )
    needs_retake: bool = False

    @field_validator("problem_text")
    @classmethod
    def strip_problem(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("problem_text cannot be empty or whitespace")
        return v

    @field_validator("difficulty", mode="before")
    @classmethod
    def clamp_difficulty(cls, v) -> int:
        try:
            value = round(float(v))
        except (TypeError, ValueError):
            return 3
        return max(1, min(5, value))

    @field_validator("grade_level", "final_answer", mode="before")
    @classmethod
    def stringify(cls, v):
        return None if v is None else str(v).strip() or None

    @field_validator("key_numbers", "questions", "solution_steps", mode="before")
    @classmethod
    def coerce_lists(cls, v) -> list[str]:
        return _str_list(v)


class DialogueReply(_CollaboratorModel):
    """One tutor turn: feedback on the answer plus the next guiding question."""
    feedback: str = Field(min_length=1)
    next_question: str | None = Field(
        None, validation_alias=AliasChoices("next_question", "nextQuestion"),
    )
    is_correct: bool | None = Field(
        None, validation_alias=AliasChoices("is_correct", "isCorrect"),
    )

    @field_validator("feedback")
    @classmethod
    def strip_feedback(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("feedback cannot be empty")
        return v

    @field_validator("next_question", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class ThinkingScores(_CollaboratorModel):
    logical_thinking: int = Field(
        ge=1, le=5, validation_alias=AliasChoices("logical_thinking", "logicalThinking"),
    )
    problem_solving: int = Field(
        ge=1, le=5, validation_alias=AliasChoices("problem_solving", "problemSolving"),
    )
    communication: int = Field(ge=1, le=5)
    creativity: int = Field(ge=1, le=5)


class KnowledgePoint(_CollaboratorModel):
    name: str = Field(min_length=1)
    mastery: int = Field(ge=0, le=100)
    description: str = ""


class ReportEvaluation(_CollaboratorModel):
    """Scored evaluation of a whole session."""
    score: int = Field(ge=0, le=100)
    level: str = ""
    strengths: list[str] = Field(min_length=1)
    improvements: list[str] = Field(default_factory=list)
    thinking: ThinkingScores = Field(
        validation_alias=AliasChoices("thinking", "thinking_analysis", "thinkingAnalysis"),
    )
    knowledge_points: list[KnowledgePoint] = Field(
        default_factory=list,
        validation_alias=AliasChoices("knowledge_points", "knowledgePoints"),
    )
    suggestions: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("next_steps", "nextSteps"),
    )

    @field_validator("strengths", "improvements", "suggestions", "next_steps", mode="before")
    @classmethod
    def coerce_lists(cls, v) -> list[str]:
        return _str_list(v)

    @model_validator(mode="after")
    def normalize_level(self):
        if self.level not in LEVELS:
            self.level = performance_level(self.score)
        return self
