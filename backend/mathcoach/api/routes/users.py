"""Users — the caller's profile, settings and aggregated learning statistics.

Invariants:
    - /users/me always resolves to the token owner (no user id in the path)
    - GET /users/me/stats reads the stored aggregate; recompute is explicit
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.api.dependencies import get_job_queue, get_request_context
from mathcoach.config import get_settings
from mathcoach.core.request_context import RequestContext
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.database import get_db
from mathcoach.schemas.user import ProfileResponse, ProfileUpdate, UserStatsResponse
from mathcoach.services.stats_aggregator import StatsAggregator
from mathcoach.services.user_profile import UserProfileService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=ProfileResponse)
async def get_profile(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    user = await UserProfileService(db).get_profile(ctx.user_id)
    return ProfileResponse.from_row(user)


@router.patch("/me", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
    jobs: BackgroundJobQueue | None = Depends(get_job_queue),
):
    user = await UserProfileService(db, jobs).update_profile(
        ctx.user_id,
        nickname=body.nickname,
        avatar_url=body.avatar_url,
        settings=body.settings,
    )
    return ProfileResponse.from_row(user)


@router.get("/me/stats", response_model=UserStatsResponse)
async def get_stats(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    stats = await StatsAggregator(db, get_settings().stats_timezone).get_stats(ctx.user_id)
    return UserStatsResponse(**stats)


@router.post("/me/stats/recompute", response_model=UserStatsResponse)
async def recompute_stats(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    stats = await StatsAggregator(db, get_settings().stats_timezone).recompute_stats(ctx.user_id)
    return UserStatsResponse(**stats)
