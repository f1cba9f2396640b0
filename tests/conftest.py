"""
Pytest fixtures for Minjok Journal tests.

Every test gets its own file-backed SQLite database (in-memory databases are
per-connection) and its own storage directory.
"""

import os
import tempfile
from datetime import datetime, timedelta
from typing import AsyncGenerator, Awaitable, Callable

# Configure the app for tests before anything imports minjok.config
_tmp_root = tempfile.mkdtemp(prefix="minjok-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmp_root, 'app.db')}"
os.environ["STORAGE_ROOT"] = os.path.join(_tmp_root, "storage")
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG"] = "false"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.config import get_settings

get_settings.cache_clear()

from minjok.database import build_engine, build_session_maker
from minjok.kernel.identity.actor import Actor
from minjok.kernel.identity.jwt import JWTManager
from minjok.kernel.identity.password import hash_password
from minjok.kernel.models import Base
from minjok.kernel.models.base import utc_now
from minjok.kernel.models.profile import AdminType, Profile, ProfileRole
from minjok.kernel.storage.object_storage import LocalObjectStorage, UploadedFile, run_pending_removals
from minjok.services.article_service import ArticleService

TEST_PASSWORD = "TestPassword123"


class FakeClock:
    """Controllable stand-in for utc_now."""

    def __init__(self, start: datetime = None):
        self.now = start or utc_now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database with every table created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return build_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def commit(db_session: AsyncSession) -> Callable[[], Awaitable[None]]:
    """Commit the test session, then run the object removals it queued."""

    async def _commit() -> None:
        await db_session.commit()
        await run_pending_removals(db_session)

    return _commit


@pytest.fixture
def storage(tmp_path) -> LocalObjectStorage:
    return LocalObjectStorage(str(tmp_path / "storage"), "http://test/storage")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_file() -> Callable[..., UploadedFile]:
    def _make(name: str = "paper.pdf", content: bytes = b"%PDF-1.4 test paper") -> UploadedFile:
        return UploadedFile(file_name=name, content=content, content_type="application/pdf")

    return _make


@pytest.fixture
def make_profile(db_session: AsyncSession):
    """Factory for committed profiles."""
    counter = {"n": 0}

    async def _make(
        full_name: str = "Test Member",
        role: ProfileRole = ProfileRole.MENTEE,
        admin_type: AdminType = AdminType.USER,
        email: str = None,
    ) -> Profile:
        counter["n"] += 1
        profile = Profile(
            email=email or f"member{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            full_name=full_name,
            role=role,
            admin_type=admin_type,
        )
        db_session.add(profile)
        await db_session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def author(make_profile) -> Profile:
    return await make_profile("Kim Author")


@pytest_asyncio.fixture
async def other(make_profile) -> Profile:
    return await make_profile("Lee Other")


@pytest_asyncio.fixture
async def mentor(make_profile) -> Profile:
    return await make_profile("Park Mentor", role=ProfileRole.MENTOR)


@pytest_asyncio.fixture
async def admin(make_profile) -> Profile:
    return await make_profile("Choi Admin", role=ProfileRole.ADMIN)


@pytest.fixture
def author_actor(author) -> Actor:
    return Actor.from_profile(author)


@pytest.fixture
def other_actor(other) -> Actor:
    return Actor.from_profile(other)


@pytest.fixture
def mentor_actor(mentor) -> Actor:
    return Actor.from_profile(mentor)


@pytest.fixture
def admin_actor(admin) -> Actor:
    return Actor.from_profile(admin)


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only-0123456789",
        algorithm="HS256",
        access_token_expire_minutes=30,
        refresh_token_expire_days=7,
    )


@pytest.fixture
def article_service(db_session, storage, clock):
    return ArticleService(db_session, storage, clock=clock)


@pytest.fixture
def make_published_paper(article_service, author_actor, make_file, clock):
    """Factory: create, submit and publish a paper, then move the clock past the cooldown."""

    async def _make(title: str = "Published Paper", actor: Actor = None, description: str = None):
        actor = actor or author_actor
        article = await article_service.create_article(actor, title, make_file())
        await article_service.submit_for_review(article.id, actor)
        await article_service.publish(article.id, actor, title=title, description=description)
        clock.advance(10)
        return article

    return _make
