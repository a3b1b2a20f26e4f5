"""Pytest fixtures for the follow graph backend."""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator, Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_db
from app import create_app
from core.config import settings
from services import ContentFetchError, ContentPage, ContentSummary, FollowRateLimiter, set_follow_rate_limiter
from services.follow_edges import FollowEdgeStore

EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    backend_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_dir / "alembic"))
    alembic_cfg.attributes["configure_logger"] = False

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


def as_user(user_id: int) -> dict[str, str]:
    """Headers the authenticating gateway would forward for ``user_id``."""
    return {settings.auth_user_header: str(user_id)}


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeContentStore:
    """In-memory content store.

    Every stored item is returned whatever its status so the feed's own
    visibility filtering is exercised.
    """

    def __init__(self, page_limit: int = 50) -> None:
        self.items: dict[int, list[ContentSummary]] = defaultdict(list)
        self.failing_authors: set[int] = set()
        self.delays: dict[int, float] = {}
        self.calls: list[tuple[int, str | None]] = []
        self.page_limit = page_limit
        self._next_id = 1

    def publish(
        self,
        author_id: int,
        *,
        at: datetime,
        content_id: int | None = None,
        status: str = "published",
        published: bool = True,
    ) -> ContentSummary:
        if content_id is None:
            content_id = self._next_id
        self._next_id = max(self._next_id, content_id) + 1
        item = ContentSummary(
            id=content_id,
            title=f"Content {content_id}",
            body_excerpt=f"Body of {content_id}",
            author_id=author_id,
            status=status,
            published_at=at if published else None,
            created_at=at,
        )
        self.items[author_id].append(item)
        return item

    async def list_by_author(
        self,
        author_id: int,
        *,
        status: str = "published",
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ContentPage:
        self.calls.append((author_id, cursor))
        delay = self.delays.get(author_id)
        if delay:
            await asyncio.sleep(delay)
        if author_id in self.failing_authors:
            raise ContentFetchError(author_id, "content service returned 500")

        ordered = sorted(
            self.items[author_id],
            key=lambda item: (item.sort_timestamp, item.id),
            reverse=True,
        )
        start = int(cursor) if cursor else 0
        size = min(limit or self.page_limit, self.page_limit)
        end = start + size
        return ContentPage(
            items=ordered[start:end],
            next_cursor=str(end) if end < len(ordered) else None,
        )


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "backend-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture()
async def session_maker(test_database_url: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Return a session factory bound to a clean migrated database."""
    engine = create_async_engine(
        test_database_url,
        connect_args={"check_same_thread": False},
    )
    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield maker
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def edge_store(db_session: AsyncSession, clock: TickingClock) -> FollowEdgeStore:
    return FollowEdgeStore(db_session, clock=clock)


@pytest.fixture()
def content_store() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture()
def app(session_maker, content_store: FakeContentStore) -> Iterator[FastAPI]:
    """Create the FastAPI app with test database and content store overrides."""
    application = create_app(content_store=content_store)

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


class _InMemoryRedis:
    def __init__(self) -> None:
        self.data: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        value = self.data.get(key, 0) + 1
        self.data[key] = value
        return value

    async def expire(self, key: str, ttl: int) -> None:  # pragma: no cover - noop
        return None


@pytest.fixture(autouse=True)
def _rate_limiter_stub() -> Iterator[None]:
    limiter = FollowRateLimiter(_InMemoryRedis(), limit=1_000, window_seconds=60)
    set_follow_rate_limiter(limiter)
    yield
    set_follow_rate_limiter(None)
