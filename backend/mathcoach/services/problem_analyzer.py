"""Problem Analyzer — vision collaborator turning a problem photo into a ProblemAnalysis.

Invariants:
    - Transport failures (timeout, rate limit, 5xx) raise CollaboratorError
    - Unparseable or schema-invalid output never raises: it yields the fixed
      retake placeholder (needs_retake=True)
    - Returned analysis is always schema-valid

Design Decisions:
    - JSON repair before validation (json_extract): models wrap JSON in prose and fences
    - Placeholder over error for unreadable photos: the client's remedy is to
      retake the photo, not to retry the request
"""

import base64
import logging

from pydantic import ValidationError as SchemaValidationError

from mathcoach.core import feedback_templates as tpl
from mathcoach.core.json_extract import parse_model_json
from mathcoach.infrastructure.anthropic_client import ResilientAnthropicClient
from mathcoach.schemas.analysis import ProblemAnalysis
from mathcoach.services.prompts import ANALYSIS_SYSTEM, ANALYSIS_USER

logger = logging.getLogger(__name__)

COLLABORATOR = "analysis"


def retake_placeholder() -> ProblemAnalysis:
    return ProblemAnalysis(
        problem_text=tpl.RETAKE_PROBLEM_TEXT,
        difficulty=3,
        questions=list(tpl.RETAKE_QUESTIONS),
        solution_steps=list(tpl.RETAKE_SOLUTION_STEPS),
        needs_retake=True,
    )


def parse_analysis(text: str | None) -> ProblemAnalysis:
    """Repair and validate model output; placeholder when unrecoverable."""
    data = parse_model_json(text)
    if data is None:
        logger.warning(
            "Analysis output is not JSON, using retake placeholder",
            extra={"collaborator": COLLABORATOR},
        )
        return retake_placeholder()
    try:
        return ProblemAnalysis.model_validate(data)
    except SchemaValidationError as e:
        logger.warning(
            f"Analysis output failed validation: {e.error_count()} errors",
            extra={"collaborator": COLLABORATOR},
        )
        return retake_placeholder()


class ProblemAnalyzer:
    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 1500,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def analyze(self, image_bytes: bytes, media_type: str) -> ProblemAnalysis:
        text = await self.client.complete_text(
            model=self.model,
            max_tokens=self.max_tokens,
            system=ANALYSIS_SYSTEM,
            messages=[{
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": media_type,
                            "data": base64.b64encode(image_bytes).decode(),
                        },
                    },
                    {"type": "text", "text": ANALYSIS_USER},
                ],
            }],
            collaborator=COLLABORATOR,
        )
        return parse_analysis(text)
