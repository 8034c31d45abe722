"""Identity Resolver and User Profile — idempotent resolution, anonymous fallback, merges."""

from sqlalchemy import func, select

from mathcoach.core.identity_token import verify_token
from mathcoach.models.behavior_event import BehaviorEvent
from mathcoach.models.user import User
from mathcoach.services.identity_resolver import IdentityResolver
from mathcoach.services.user_profile import UserProfileService, ensure_user

from tests.services.fake_collaborators import FakeIdentityProvider

SECRET = "test-secret-key"


async def _user_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(User))


async def test_same_credential_resolves_to_same_user(test_db):
    resolver = IdentityResolver(test_db, FakeIdentityProvider(), SECRET)
    first = await resolver.authenticate("wx-code-1")
    second = await resolver.authenticate("wx-code-1")

    assert not first.anonymous
    assert first.user_id == second.user_id
    assert verify_token(first.access_token, SECRET) == first.user_id
    assert await _user_count(test_db) == 1


async def test_different_credentials_resolve_to_different_users(test_db):
    resolver = IdentityResolver(test_db, FakeIdentityProvider(), SECRET)
    a = await resolver.authenticate("wx-code-1")
    b = await resolver.authenticate("wx-code-2")
    assert a.user_id != b.user_id


async def test_provider_failure_is_anonymous_and_persists_nothing(test_db):
    resolver = IdentityResolver(test_db, FakeIdentityProvider(fail=True), SECRET)
    result = await resolver.authenticate("wx-code-1")
    assert result.anonymous
    assert result.user_id is None
    assert result.access_token is None
    assert await _user_count(test_db) == 0


async def test_ensure_user_reports_first_creation_only(test_db):
    assert await ensure_user(test_db, "user-a") is True
    assert await ensure_user(test_db, "user-a") is False


async def test_get_profile_creates_missing_user(test_db):
    user = await UserProfileService(test_db).get_profile("user-a")
    assert user.id == "user-a"
    assert user.settings == {}
    assert user.nickname is None


async def test_update_profile_merges_settings(test_db, jobs):
    service = UserProfileService(test_db, jobs)
    await service.update_profile("user-a", settings={"sound": True, "theme": "light"})
    user = await service.update_profile("user-a", nickname="小明", settings={"theme": "dark"})

    assert user.nickname == "小明"
    assert user.settings == {"sound": True, "theme": "dark"}

    await jobs.join()
    events = (await test_db.execute(
        select(BehaviorEvent).order_by(BehaviorEvent.created_at),
    )).scalars().all()
    assert [e.action for e in events] == ["profile_updated", "profile_updated"]
    assert events[-1].data == {"fields": ["nickname", "settings"]}


async def test_empty_update_changes_nothing(test_db, jobs):
    service = UserProfileService(test_db, jobs)
    before = await service.get_profile("user-a")
    after = await service.update_profile("user-a")
    assert after.updated_at == before.updated_at
    await jobs.join()
    assert await test_db.scalar(select(func.count()).select_from(BehaviorEvent)) == 0
