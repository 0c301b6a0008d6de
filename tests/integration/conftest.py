"""Pytest fixtures running the SQL repository and the app on in-memory SQLite."""

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from podhost.services.podcast_service import PodcastService
from podhost.services.repository import SqlPodcastRepository
from tests.conftest import AUDIO_CONTAINER, PUBLIC_BASE_URL, FakeContentStore

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest_asyncio.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Yield an engine over a fresh in-memory database with all tables created."""
    # Ensure SQLModel metadata is populated before creating tables.
    from podhost.schemas import episodes  # noqa: F401
    from podhost.schemas import podcasts  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def sql_repository(async_engine: AsyncEngine) -> SqlPodcastRepository:
    session_factory = async_sessionmaker(
        bind=async_engine, expire_on_commit=False, class_=AsyncSession
    )
    return SqlPodcastRepository(session_factory)


@pytest_asyncio.fixture()
async def app_client(
    sql_repository: SqlPodcastRepository, content_store: FakeContentStore
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an HTTP client with the application wired to the test database."""
    from podhost.main import app
    from podhost.routes.podcasts import get_podcast_service

    service = PodcastService(
        sql_repository,
        content_store,
        audio_container=AUDIO_CONTAINER,
        public_base_url=PUBLIC_BASE_URL,
    )
    await service.prepare()

    app.dependency_overrides[get_podcast_service] = lambda: service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"X-User-Id": USER_ID},
        ) as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_podcast_service, None)
