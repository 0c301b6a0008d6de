"""Shared fixtures: in-memory collaborators for the podcast service."""

from __future__ import annotations

import io
from typing import BinaryIO, Optional

import pytest

from podhost.models.podcasts import Episode, Podcast
from podhost.services.content_store import Content, ContentStore, StoredObject
from podhost.services.errors import NotFoundError, StorageIOError
from podhost.services.podcast_service import PodcastService
from podhost.services.repository import PodcastRepository

AUDIO_CONTAINER = "test-audio"
PUBLIC_BASE_URL = "https://pods.example.com"


class InMemoryPodcastRepository(PodcastRepository):
    """Dict-backed repository that stores copies, like a real database would."""

    def __init__(self) -> None:
        self.podcasts: dict[str, Podcast] = {}
        self.episodes: dict[str, Episode] = {}
        self.fail_episode_writes = False

    async def list_podcasts(self, owner_id: str) -> list[Podcast]:
        owned = [p for p in self.podcasts.values() if p.owner_id == owner_id]
        owned.sort(key=lambda p: (p.created_at, p.id))
        return [p.model_copy(deep=True) for p in owned]

    async def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        podcast = self.podcasts.get(podcast_id)
        return podcast.model_copy(deep=True) if podcast else None

    async def add_podcast(self, podcast: Podcast) -> Podcast:
        self.podcasts[podcast.id] = podcast.model_copy(deep=True)
        return podcast

    async def save_podcast(self, podcast: Podcast) -> Optional[Podcast]:
        if podcast.id not in self.podcasts:
            return None
        self.podcasts[podcast.id] = podcast.model_copy(deep=True)
        return podcast

    async def delete_podcast(self, podcast_id: str) -> bool:
        return self.podcasts.pop(podcast_id, None) is not None

    async def list_episodes(self, podcast_id: str) -> list[Episode]:
        found = [e for e in self.episodes.values() if e.podcast_id == podcast_id]
        found.sort(key=lambda e: (e.publish_date, e.created_at, e.id))
        return [e.model_copy(deep=True) for e in found]

    async def get_episode(self, podcast_id: str, episode_id: str) -> Optional[Episode]:
        episode = self.episodes.get(episode_id)
        if episode is None or episode.podcast_id != podcast_id:
            return None
        return episode.model_copy(deep=True)

    async def add_episode(self, episode: Episode) -> Episode:
        if self.fail_episode_writes:
            raise RuntimeError("database unavailable")
        self.episodes[episode.id] = episode.model_copy(deep=True)
        return episode

    async def save_episode(self, episode: Episode) -> Optional[Episode]:
        if self.fail_episode_writes:
            raise RuntimeError("database unavailable")
        stored = self.episodes.get(episode.id)
        if stored is None or stored.podcast_id != episode.podcast_id:
            return None
        # The download counter is only changed by increment_download_count
        self.episodes[episode.id] = episode.model_copy(
            update={"download_count": stored.download_count}, deep=True
        )
        return episode

    async def delete_episode(self, podcast_id: str, episode_id: str) -> bool:
        if await self.get_episode(podcast_id, episode_id) is None:
            return False
        del self.episodes[episode_id]
        return True

    async def increment_download_count(
        self, podcast_id: str, episode_id: str
    ) -> Optional[Episode]:
        episode = self.episodes.get(episode_id)
        if episode is None or episode.podcast_id != podcast_id:
            return None
        episode.download_count += 1
        return episode.model_copy(deep=True)


class FakeContentStore(ContentStore):
    """Content store keeping objects in a dict."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.containers: set[str] = set()
        self.fail_uploads = False
        self.fail_deletes = False

    async def upload_file(
        self, container: str, name: str, content: Content, content_type: str
    ) -> StoredObject:
        if self.fail_uploads:
            raise StorageIOError(f"upload failed for {container}/{name}")
        data = bytes(content) if isinstance(content, (bytes, bytearray)) else content.read()
        self.objects[(container, name)] = (data, content_type)
        return StoredObject(
            container=container,
            name=name,
            url=f"https://cdn.example.com/{container}/{name}",
            size=len(data),
            content_type=content_type,
        )

    async def download_file(self, container: str, name: str) -> BinaryIO:
        if (container, name) not in self.objects:
            raise NotFoundError(f"{container}/{name}")
        return io.BytesIO(self.objects[(container, name)][0])

    async def delete_file(self, container: str, name: str) -> None:
        if self.fail_deletes:
            raise StorageIOError(f"delete failed for {container}/{name}")
        if self.objects.pop((container, name), None) is None:
            raise NotFoundError(f"{container}/{name}")

    async def get_url(self, container: str, name: str) -> str:
        return f"https://cdn.example.com/{container}/{name}"

    async def exists(self, container: str, name: str) -> bool:
        return (container, name) in self.objects

    async def ensure_container(self, container: str) -> None:
        self.containers.add(container)


@pytest.fixture()
def repository() -> InMemoryPodcastRepository:
    return InMemoryPodcastRepository()


@pytest.fixture()
def content_store() -> FakeContentStore:
    return FakeContentStore()


@pytest.fixture()
def service(
    repository: InMemoryPodcastRepository, content_store: FakeContentStore
) -> PodcastService:
    """Podcast service wired to in-memory collaborators."""
    return PodcastService(
        repository,
        content_store,
        audio_container=AUDIO_CONTAINER,
        public_base_url=PUBLIC_BASE_URL,
    )


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Ensure HTTPX uses asyncio backend during tests."""
    return "asyncio"
