"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Every external collaborator is reached through a Protocol type
    - Implementations provided by shell via dependency injection (api/dependencies.py)
    - Collaborators either return a schema-validated value or raise CollaboratorError

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
      (ADR: ExMA anti-pattern)
    - Schema types imported only for type checking: core stays importable
      without pulling pydantic models into pure modules
"""

from typing import TYPE_CHECKING, Protocol

from mathcoach.core.domain_types import UserId

if TYPE_CHECKING:
    from mathcoach.schemas.analysis import (
        DialogueReply, ProblemAnalysis, ReportEvaluation,
    )


class AnalysisCollaborator(Protocol):
    """Vision model: photo of a problem -> structured analysis."""
    async def analyze(
        self, image_bytes: bytes, media_type: str,
    ) -> "ProblemAnalysis": ...


class DialogueCollaborator(Protocol):
    """Tutor model: one Socratic reply per student answer."""
    async def reply(
        self,
        *,
        problem_text: str,
        analysis: dict,
        dialogue: list[dict],
        current_round: int,
        total_rounds: int,
        answer: str,
    ) -> "DialogueReply": ...


class ReportCollaborator(Protocol):
    """Evaluator model: whole session -> scored evaluation."""
    async def evaluate(
        self,
        *,
        problem_text: str,
        analysis: dict,
        dialogue: list[dict],
        stats: dict,
    ) -> "ReportEvaluation": ...


class BlobStore(Protocol):
    """Opaque binary storage; returns a reference string."""
    async def put(self, data: bytes, media_type: str) -> str: ...


class IdentityProvider(Protocol):
    """Exchanges a login credential for a stable user id."""
    async def resolve(self, credential: str) -> UserId: ...
