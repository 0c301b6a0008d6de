"""Persistence port for podcasts and episodes.

`PodcastRepository` is the interface the service depends on;
`SqlPodcastRepository` implements it with SQLModel tables over an async
session factory. Repositories only store and fetch; ownership checks and
audio bookkeeping live in the service.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from podhost.models.podcasts import Episode, Podcast
from podhost.schemas.episodes import EpisodeRecord
from podhost.schemas.podcasts import PodcastRecord

logger = logging.getLogger(__name__)


class PodcastRepository(ABC):
    """Abstract interface for podcast data persistence."""

    # --- Podcast Operations ---

    @abstractmethod
    async def list_podcasts(self, owner_id: str) -> list[Podcast]:
        """Return podcasts owned by `owner_id`, oldest first."""

    @abstractmethod
    async def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        """Return the podcast with this id, or None."""

    @abstractmethod
    async def add_podcast(self, podcast: Podcast) -> Podcast:
        """Insert a new podcast."""

    @abstractmethod
    async def save_podcast(self, podcast: Podcast) -> Optional[Podcast]:
        """Overwrite an existing podcast's stored fields; None if it is gone."""

    @abstractmethod
    async def delete_podcast(self, podcast_id: str) -> bool:
        """Delete a podcast record. Returns False if it did not exist."""

    # --- Episode Operations ---

    @abstractmethod
    async def list_episodes(self, podcast_id: str) -> list[Episode]:
        """Return a podcast's episodes ordered by publish date."""

    @abstractmethod
    async def get_episode(self, podcast_id: str, episode_id: str) -> Optional[Episode]:
        """Return the episode if it exists under this podcast, or None."""

    @abstractmethod
    async def add_episode(self, episode: Episode) -> Episode:
        """Insert a new episode."""

    @abstractmethod
    async def save_episode(self, episode: Episode) -> Optional[Episode]:
        """Overwrite an existing episode's stored fields; None if it is gone."""

    @abstractmethod
    async def delete_episode(self, podcast_id: str, episode_id: str) -> bool:
        """Delete an episode record. Returns False if it did not exist."""

    @abstractmethod
    async def increment_download_count(
        self, podcast_id: str, episode_id: str
    ) -> Optional[Episode]:
        """Atomically add one to an episode's download counter."""


def _podcast_from_record(record: PodcastRecord) -> Podcast:
    return Podcast(**record.model_dump())


def _episode_from_record(record: EpisodeRecord) -> Episode:
    return Episode(**record.model_dump())


def _episode_values(episode: Episode) -> dict:
    values = episode.model_dump()
    values["audio_object_name"] = episode.audio_object_name
    return values


class SqlPodcastRepository(PodcastRepository):
    """SQLAlchemy-backed repository; one session per operation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_podcasts(self, owner_id: str) -> list[Podcast]:
        stmt = (
            select(PodcastRecord)
            .where(PodcastRecord.owner_id == owner_id)  # type: ignore[arg-type]
            .order_by(PodcastRecord.created_at, PodcastRecord.id)  # type: ignore[arg-type]
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [_podcast_from_record(r) for r in result.scalars().all()]

    async def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        async with self._session_factory() as db:
            record = await db.get(PodcastRecord, podcast_id)
            return _podcast_from_record(record) if record else None

    async def add_podcast(self, podcast: Podcast) -> Podcast:
        async with self._session_factory() as db:
            async with db.begin():
                db.add(PodcastRecord(**podcast.model_dump()))
        return podcast

    async def save_podcast(self, podcast: Podcast) -> Optional[Podcast]:
        values = podcast.model_dump(exclude={"id", "owner_id", "created_at"})
        async with self._session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    update(PodcastRecord)
                    .where(PodcastRecord.id == podcast.id)  # type: ignore[arg-type]
                    .values(**values)
                )
        return podcast if result.rowcount else None

    async def delete_podcast(self, podcast_id: str) -> bool:
        async with self._session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    delete(PodcastRecord).where(
                        PodcastRecord.id == podcast_id  # type: ignore[arg-type]
                    )
                )
        return (result.rowcount or 0) > 0

    async def list_episodes(self, podcast_id: str) -> list[Episode]:
        stmt = (
            select(EpisodeRecord)
            .where(EpisodeRecord.podcast_id == podcast_id)  # type: ignore[arg-type]
            .order_by(
                EpisodeRecord.publish_date,  # type: ignore[arg-type]
                EpisodeRecord.created_at,  # type: ignore[arg-type]
                EpisodeRecord.id,  # type: ignore[arg-type]
            )
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [_episode_from_record(r) for r in result.scalars().all()]

    async def get_episode(self, podcast_id: str, episode_id: str) -> Optional[Episode]:
        async with self._session_factory() as db:
            record = await db.get(EpisodeRecord, episode_id)
            if record is None or record.podcast_id != podcast_id:
                return None
            return _episode_from_record(record)

    async def add_episode(self, episode: Episode) -> Episode:
        async with self._session_factory() as db:
            async with db.begin():
                db.add(EpisodeRecord(**_episode_values(episode)))
        return episode

    async def save_episode(self, episode: Episode) -> Optional[Episode]:
        values = _episode_values(episode)
        for key in ("id", "podcast_id", "created_at", "download_count"):
            values.pop(key)
        async with self._session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    update(EpisodeRecord)
                    .where(EpisodeRecord.id == episode.id)  # type: ignore[arg-type]
                    .where(EpisodeRecord.podcast_id == episode.podcast_id)  # type: ignore[arg-type]
                    .values(**values)
                )
        return episode if result.rowcount else None

    async def delete_episode(self, podcast_id: str, episode_id: str) -> bool:
        async with self._session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    delete(EpisodeRecord)
                    .where(EpisodeRecord.id == episode_id)  # type: ignore[arg-type]
                    .where(EpisodeRecord.podcast_id == podcast_id)  # type: ignore[arg-type]
                )
        return (result.rowcount or 0) > 0

    async def increment_download_count(
        self, podcast_id: str, episode_id: str
    ) -> Optional[Episode]:
        async with self._session_factory() as db:
            async with db.begin():
                result = await db.execute(
                    update(EpisodeRecord)
                    .where(EpisodeRecord.id == episode_id)  # type: ignore[arg-type]
                    .where(EpisodeRecord.podcast_id == podcast_id)  # type: ignore[arg-type]
                    .values(download_count=EpisodeRecord.download_count + 1)
                )
            if not result.rowcount:
                return None
            record = await db.get(EpisodeRecord, episode_id, populate_existing=True)
            return _episode_from_record(record) if record else None
