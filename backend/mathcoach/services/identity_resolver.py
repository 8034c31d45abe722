"""Identity Resolver — credential → stable user id + signed access token.

Invariants:
    - Idempotent: the same credential always resolves to the same user id
    - The users row is inserted on first resolution only (never updated here)
    - Provider failure yields an anonymous result, never a persisted user
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.domain_types import UserId
from mathcoach.core.errors import CollaboratorError
from mathcoach.core.identity_token import sign_token
from mathcoach.core.repository_protocols import IdentityProvider
from mathcoach.services.user_profile import ensure_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityResult:
    anonymous: bool
    user_id: UserId | None = None
    access_token: str | None = None


class IdentityResolver:
    def __init__(self, db: AsyncSession, provider: IdentityProvider, secret: str):
        self.db = db
        self.provider = provider
        self.secret = secret

    async def resolve_identity(self, credential: str) -> UserId:
        """Provider lookup + first-write user row. Raises CollaboratorError."""
        user_id = await self.provider.resolve(credential)
        if await ensure_user(self.db, user_id):
            logger.info("New user registered", extra={"user_id": user_id})
        return user_id

    async def authenticate(self, credential: str) -> IdentityResult:
        try:
            user_id = await self.resolve_identity(credential)
        except CollaboratorError as e:
            logger.warning(
                f"Identity provider failed ({e.error_type}), continuing anonymously",
                extra={"collaborator": "identity"},
            )
            return IdentityResult(anonymous=True)
        return IdentityResult(
            anonymous=False,
            user_id=user_id,
            access_token=sign_token(user_id, self.secret),
        )
