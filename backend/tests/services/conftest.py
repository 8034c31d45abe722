"""Service test fixtures — async DB, background job queue, fakes and FastAPI test client.

Invariants:
    - Every test gets a fresh SQLite database file under tmp_path
    - get_db dependency overridden to use the test DB session
    - db_manager patched so background jobs (which bypass get_db) hit the test DB
    - Every collaborator dependency is replaced by a scripted fake

Design Decisions:
    - File-backed SQLite over :memory:: background jobs and concurrent requests
      need their own connections to the same database
    - Tests call `await jobs.join()` before asserting on side effects
"""

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

import mathcoach.infrastructure.database as db_module
from mathcoach.api import dependencies as deps
from mathcoach.core.request_context import RequestContext
from mathcoach.db.base import Base
from mathcoach.infrastructure.background import BackgroundJobQueue
from mathcoach.infrastructure.database import DatabaseSessionManager, get_db
from mathcoach.main import app
import mathcoach.models  # noqa: F401

from tests.services.fake_collaborators import (
    FakeAnalyzer, FakeDialogueCoach, FakeIdentityProvider, FakeReportSynthesizer,
    InMemoryBlobStore,
)


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'mathcoach_test.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def patched_db_manager(test_engine, test_session_factory):
    """Point the db_manager singleton at the test DB for background jobs."""
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager
    yield fake_manager
    db_module.db_manager = original_manager


@pytest.fixture
async def jobs(patched_db_manager):
    queue = BackgroundJobQueue(workers=1, max_attempts=2, retry_delay=0.01)
    queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
def fakes():
    return SimpleNamespace(
        analyzer=FakeAnalyzer(),
        dialogue=FakeDialogueCoach(),
        report=FakeReportSynthesizer(),
        blobs=InMemoryBlobStore(),
        identity=FakeIdentityProvider(),
    )


@pytest.fixture
def ctx():
    return RequestContext(user_id="user-a")


@pytest.fixture
async def client(test_session_factory, patched_db_manager, jobs, fakes):
    """FastAPI test client with DB, job queue and collaborators overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_job_queue] = lambda: jobs
    app.dependency_overrides[deps.get_analysis_collaborator] = lambda: fakes.analyzer
    app.dependency_overrides[deps.get_dialogue_collaborator] = lambda: fakes.dialogue
    app.dependency_overrides[deps.get_report_collaborator] = lambda: fakes.report
    app.dependency_overrides[deps.get_blob_store] = lambda: fakes.blobs
    app.dependency_overrides[deps.get_identity_provider] = lambda: fakes.identity

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
