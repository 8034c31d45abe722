"""Route Dependencies — request identity, collaborators and services for FastAPI Depends.

Invariants:
    - Every user-scoped route resolves RequestContext from a valid Bearer token
      (AuthenticationError otherwise); the user id never comes from the body
    - Collaborators are overridable one by one via app.dependency_overrides

Design Decisions:
    - Anthropic client is a lazy process-wide singleton: AsyncAnthropic is
      connection-pool-safe, so one client serves every request
    - Services built per request around the request's AsyncSession
"""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.config import get_settings
from mathcoach.core.errors import AuthenticationError
from mathcoach.core.identity_token import verify_token
from mathcoach.core.repository_protocols import (
    AnalysisCollaborator, BlobStore, DialogueCollaborator, IdentityProvider,
    ReportCollaborator,
)
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure import background
from mathcoach.infrastructure.anthropic_client import ResilientAnthropicClient
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.blob_storage import LocalBlobStore
from mathcoach.infrastructure.database import get_db
from mathcoach.infrastructure.identity_provider import (
    HmacIdentityProvider, WeChatIdentityProvider,
)
from mathcoach.services.dialogue_coach import DialogueCoach
from mathcoach.services.dialogue_engine import DialogueEngine
from mathcoach.services.problem_analyzer import ProblemAnalyzer
from mathcoach.services.problem_intake import ProblemIntake
from mathcoach.services.report_generator import ReportGenerator
from mathcoach.services.report_synthesizer import ReportSynthesizer

_BEARER = "bearer "

_anthropic_client: ResilientAnthropicClient | None = None


def get_anthropic_client() -> ResilientAnthropicClient:
    global _anthropic_client
    if _anthropic_client is None:
        settings = get_settings()
        _anthropic_client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
            call_deadline_seconds=settings.collaborator_timeout_seconds,
        )
    return _anthropic_client


# ─── Identity ───────────────────────────────────────────────────

async def get_request_context(
    authorization: str | None = Header(None),
) -> RequestContext:
    if not authorization or not authorization.lower().startswith(_BEARER):
        raise AuthenticationError()
    token = authorization[len(_BEARER):].strip()
    user_id = verify_token(token, get_settings().secret_key)
    if user_id is None:
        raise AuthenticationError("Invalid or expired access token")
    return RequestContext(user_id=user_id)


def get_identity_provider() -> IdentityProvider:
    settings = get_settings()
    if settings.identity_provider == "wechat":
        return WeChatIdentityProvider(
            settings.wechat_app_id,
            settings.wechat_app_secret,
            api_base=settings.wechat_api_base,
        )
    return HmacIdentityProvider(settings.secret_key)


# ─── Collaborators ──────────────────────────────────────────────

def get_analysis_collaborator() -> AnalysisCollaborator:
    return ProblemAnalyzer(get_anthropic_client(), get_settings().vision_model)


def get_dialogue_collaborator() -> DialogueCollaborator:
    return DialogueCoach(get_anthropic_client(), get_settings().dialogue_model)


def get_report_collaborator() -> ReportCollaborator:
    return ReportSynthesizer(get_anthropic_client(), get_settings().report_model)


def get_blob_store() -> BlobStore:
    return LocalBlobStore(get_settings().blob_storage_dir)


def get_job_queue() -> BackgroundJobQueue | None:
    return background.job_queue


# ─── Services ───────────────────────────────────────────────────

def get_report_generator(
    db: AsyncSession = Depends(get_db),
    collaborator: ReportCollaborator = Depends(get_report_collaborator),
    jobs: BackgroundJobQueue | None = Depends(get_job_queue),
) -> ReportGenerator:
    return ReportGenerator(
        db, collaborator, jobs,
        timeout_seconds=get_settings().collaborator_timeout_seconds,
    )


def get_dialogue_engine(
    db: AsyncSession = Depends(get_db),
    collaborator: DialogueCollaborator = Depends(get_dialogue_collaborator),
    report_generator: ReportGenerator = Depends(get_report_generator),
    jobs: BackgroundJobQueue | None = Depends(get_job_queue),
) -> DialogueEngine:
    return DialogueEngine(
        db, collaborator, report_generator, jobs,
        timeout_seconds=get_settings().collaborator_timeout_seconds,
    )


def get_problem_intake(
    db: AsyncSession = Depends(get_db),
    analyzer: AnalysisCollaborator = Depends(get_analysis_collaborator),
    blob_store: BlobStore = Depends(get_blob_store),
    jobs: BackgroundJobQueue | None = Depends(get_job_queue),
) -> ProblemIntake:
    settings = get_settings()
    return ProblemIntake(
        db, analyzer, blob_store, jobs,
        max_image_bytes=settings.max_image_bytes,
        total_rounds=settings.total_rounds,
        timeout_seconds=settings.collaborator_timeout_seconds,
    )
