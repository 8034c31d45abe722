"""User Profile — lazily created user record with profile and settings edits.

Invariants:
    - get_profile never fails for an authenticated user (row created if absent)
    - update_profile merges settings key-by-key; unspecified fields are untouched
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mathcoach.core.domain_types import BehaviorAction
from mathcoach.core.time_utils import utc_now
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.upsert import insert_if_absent
from mathcoach.models.user import User
from mathcoach.services.behavior_logger import BehaviorLogger


async def ensure_user(db: AsyncSession, user_id: str) -> bool:
    """Insert the user row if absent. Returns True on first creation."""
    now = utc_now()
    created = await insert_if_absent(
        db,
        User,
        {
            "id": user_id,
            "settings": {},
            "learning_stats": {},
            "achievements": [],
            "created_at": now,
            "updated_at": now,
        },
        conflict_columns=["id"],
    )
    await db.commit()
    return created


class UserProfileService:
    def __init__(self, db: AsyncSession, jobs: BackgroundJobQueue | None = None):
        self.db = db
        self.behavior = BehaviorLogger(jobs)

    async def get_profile(self, owner: str) -> User:
        await ensure_user(self.db, owner)
        result = await self.db.execute(
            select(User)
            .where(User.id == owner)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one()

    async def update_profile(
        self,
        owner: str,
        nickname: str | None = None,
        avatar_url: str | None = None,
        settings: dict | None = None,
    ) -> User:
        user = await self.get_profile(owner)
        changed: list[str] = []
        if nickname is not None:
            user.nickname = nickname
            changed.append("nickname")
        if avatar_url is not None:
            user.avatar_url = avatar_url
            changed.append("avatar_url")
        if settings:
            user.settings = {**(user.settings or {}), **settings}
            changed.append("settings")
        if changed:
            user.updated_at = utc_now()
            await self.db.commit()
            self.behavior.record(
                owner, BehaviorAction.PROFILE_UPDATED, {"fields": changed},
            )
        return user
