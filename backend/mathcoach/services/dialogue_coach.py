"""Dialogue Coach — tutor collaborator producing one validated DialogueReply per answer.

Invariants:
    - Returns a schema-valid DialogueReply or raises CollaboratorError
    - Invalid output raises with error_type="invalid_output" (caller falls back)
"""

import logging

from pydantic import ValidationError as SchemaValidationError

from mathcoach.core.errors import CollaboratorError
from mathcoach.core.json_extract import parse_model_json
from mathcoach.infrastructure.anthropic_client import ResilientAnthropicClient
from mathcoach.schemas.analysis import DialogueReply
from mathcoach.services.prompts import DIALOGUE_SYSTEM, build_dialogue_message

logger = logging.getLogger(__name__)

COLLABORATOR = "dialogue"


def parse_dialogue_reply(text: str | None) -> DialogueReply:
    data = parse_model_json(text)
    if data is None:
        logger.warning(
            f"Dialogue reply is not JSON ({len(text or '')} chars)",
            extra={"collaborator": COLLABORATOR},
        )
        raise CollaboratorError("reply is not a JSON object", COLLABORATOR, "invalid_output")
    try:
        return DialogueReply.model_validate(data)
    except SchemaValidationError as e:
        logger.warning(
            f"Dialogue reply failed validation: {e.error_count()} errors",
            extra={"collaborator": COLLABORATOR},
        )
        raise CollaboratorError(
            f"reply failed validation ({e.error_count()} errors)",
            COLLABORATOR, "invalid_output",
        )


class DialogueCoach:
    def __init__(
        self,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 600,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def reply(
        self,
        *,
        problem_text: str,
        analysis: dict,
        dialogue: list[dict],
        current_round: int,
        total_rounds: int,
        answer: str,
    ) -> DialogueReply:
        text = await self.client.complete_text(
            model=self.model,
            max_tokens=self.max_tokens,
            system=DIALOGUE_SYSTEM,
            messages=[{
                "role": "user",
                "content": build_dialogue_message(
                    problem_text=problem_text,
                    analysis=analysis,
                    dialogue=dialogue,
                    current_round=current_round,
                    total_rounds=total_rounds,
                    answer=answer,
                ),
            }],
            collaborator=COLLABORATOR,
        )
        return parse_dialogue_reply(text)
