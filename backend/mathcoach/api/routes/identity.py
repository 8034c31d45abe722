"""Identity — exchange a client credential for a user id and access token.

Invariants:
    - Provider failure → 200 {"anonymous": true}, no token, nothing persisted
    - The only unauthenticated user-facing route
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.api.dependencies import get_identity_provider
from mathcoach.config import get_settings
from mathcoach.core.repository_protocols import IdentityProvider
from mathcoach.infrastructure.database import get_db
from mathcoach.schemas.user import IdentityResolveRequest, IdentityResolveResponse
from mathcoach.services.identity_resolver import IdentityResolver

router = APIRouter(prefix="/api/v1/identity", tags=["identity"])


@router.post("/resolve", response_model=IdentityResolveResponse)
async def resolve_identity(
    body: IdentityResolveRequest,
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    resolver = IdentityResolver(db, provider, get_settings().secret_key)
    result = await resolver.authenticate(body.credential)
    return IdentityResolveResponse(
        anonymous=result.anonymous,
        user_id=result.user_id,
        access_token=result.access_token,
    )
