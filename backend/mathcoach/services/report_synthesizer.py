"""Report Synthesizer — evaluator collaborator producing a validated ReportEvaluation.

Invariants:
    - Returns a schema-valid ReportEvaluation or raises CollaboratorError
    - Any score/thinking value out of range invalidates the whole evaluation
"""

import logging

from pydantic import ValidationError as SchemaValidationError

from mathcoach.core.errors import CollaboratorError
from mathcoach.core.json_extract import parse_model_json
from mathcoach.infrastructure.anthropic_client import ResilientAnthropicClient
from mathcoach.schemas.analysis import ReportEvaluation
from mathcoach.services.prompts import REPORT_SYSTEM, build_report_message

logger = logging.getLogger(__name__)

COLLABORATOR = "report"


def parse_report_evaluation(text: str | None) -> ReportEvaluation:
    data = parse_model_json(text)
    if data is None:
        logger.warning(
            f"Report evaluation is not JSON ({len(text or '')} chars)",
            extra={"collaborator": COLLABORATOR},
        )
        raise CollaboratorError("evaluation is not a JSON object", COLLABORATOR, "invalid_output")
    try:
        return ReportEvaluation.model_validate(data)
    except SchemaValidationError as e:
        logger.warning(
            f"Report evaluation failed validation: {e.error_count()} errors",
            extra={"collaborator": COLLABORATOR},
        )
        raise CollaboratorError(
            f"evaluation failed validation ({e.error_count()} errors)",
            COLLABORATOR, "invalid_output",
        )


class ReportSynthesizer:
    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 2000,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def evaluate(
        self,
        *,
        problem_text: str,
        analysis: dict,
        dialogue: list[dict],
        stats: dict,
    ) -> ReportEvaluation:
        text = await self.client.complete_text(
            model=self.model,
            max_tokens=self.max_tokens,
            system=REPORT_SYSTEM,
            messages=[{
                "role": "user",
                "content": build_report_message(
                    problem_text=problem_text,
                    analysis=analysis,
                    dialogue=dialogue,
                    stats=stats,
                ),
            }],
            collaborator=COLLABORATOR,
        )
        return parse_report_evaluation(text)
