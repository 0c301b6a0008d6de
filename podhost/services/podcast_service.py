"""Podcast and episode orchestration.

`PodcastService` enforces ownership, keeps episode records and their stored
audio in step, and builds statistics snapshots. It is constructed once with
its collaborators and holds no per-request state.

Ordering rules:
- An episode record is only persisted after its audio upload succeeded; if
  persisting then fails, the uploaded object is removed again.
- Records are deleted before their audio objects. A failure in between
  leaves an orphaned object in storage, never a record pointing at deleted
  audio.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import BinaryIO, Optional, Union

from podhost.models.fields import utcnow
from podhost.models.podcasts import (
    DEFAULT_AUDIO_MIME_TYPE,
    Episode,
    Podcast,
    PodcastStats,
    new_id,
)
from podhost.services.content_store import ContentStore
from podhost.services.errors import (
    InvalidInputError,
    NotFoundError,
    StorageIOError,
)
from podhost.services.repository import PodcastRepository
from podhost.services.stats_service import build_podcast_stats

logger = logging.getLogger(__name__)

AudioContent = Union[bytes, BinaryIO]

# Fields a client may change through update_podcast / update_episode
_PODCAST_MUTABLE_FIELDS = (
    "title",
    "description",
    "author",
    "email",
    "image_url",
    "categories",
    "website_url",
    "language",
    "explicit",
)
_EPISODE_MUTABLE_FIELDS = (
    "title",
    "description",
    "duration",
    "season",
    "episode_number",
    "publish_date",
    "explicit",
    "image_url",
)

DEFAULT_AUDIO_FILE_NAME = "audio"


def clean_file_name(file_name: Optional[str]) -> str:
    """Reduce a client-supplied file name to a safe final path component."""
    if not file_name:
        return DEFAULT_AUDIO_FILE_NAME
    name = PurePosixPath(file_name.replace("\\", "/")).name.strip()
    if name in {"", ".", ".."}:
        return DEFAULT_AUDIO_FILE_NAME
    return name


def audio_object_name(
    podcast_id: str,
    episode_id: str,
    file_name: str,
    revision: Optional[str] = None,
) -> str:
    """Derive the content-store key for an episode's audio."""
    if revision:
        return f"{podcast_id}/{episode_id}/{revision}/{file_name}"
    return f"{podcast_id}/{episode_id}/{file_name}"


def _require_title(title: str, kind: str) -> None:
    if not title or not title.strip():
        raise InvalidInputError(f"{kind} title is required")


class PodcastService:
    """Ownership-scoped CRUD for podcasts and episodes."""

    def __init__(
        self,
        repository: PodcastRepository,
        content_store: ContentStore,
        *,
        audio_container: str,
        public_base_url: str,
    ) -> None:
        self.repository = repository
        self.content_store = content_store
        self.audio_container = audio_container
        self.public_base_url = public_base_url.rstrip("/")

    async def prepare(self) -> None:
        """Make sure the audio container exists."""
        await self.content_store.ensure_container(self.audio_container)

    def rss_url_for(self, podcast_id: str) -> str:
        return f"{self.public_base_url}/podcasts/{podcast_id}/rss"

    # --- Podcasts ---

    async def list_podcasts(self, user_id: str) -> list[Podcast]:
        return await self.repository.list_podcasts(user_id)

    async def get_podcast(self, podcast_id: str, user_id: str) -> Podcast:
        return await self._owned_podcast(podcast_id, user_id)

    async def create_podcast(self, podcast: Podcast, user_id: str) -> Podcast:
        """Persist a new podcast owned by `user_id`.

        Client-supplied id, owner, timestamps and feed URL are ignored.
        """
        _require_title(podcast.title, "podcast")
        podcast_id = new_id()
        now = utcnow()
        created = podcast.model_copy(
            update={
                "id": podcast_id,
                "owner_id": user_id,
                "created_at": now,
                "updated_at": now,
                "rss_url": self.rss_url_for(podcast_id),
            },
            deep=True,
        )
        await self.repository.add_podcast(created)
        logger.info(f"Created podcast {podcast_id} for owner {user_id}")
        return created

    async def update_podcast(self, podcast: Podcast, user_id: str) -> Podcast:
        """Merge the payload's metadata into the stored podcast.

        Only fields present in the payload are applied; `id`, `ownerId`,
        `createdAt` and `rssUrl` are never changed.
        """
        existing = await self._owned_podcast(podcast.id, user_id)
        changes = {
            field: getattr(podcast, field)
            for field in _PODCAST_MUTABLE_FIELDS
            if field in podcast.model_fields_set
        }
        if "title" in changes:
            _require_title(changes["title"], "podcast")
        changes["updated_at"] = utcnow()
        updated = existing.model_copy(update=changes, deep=True)
        if await self.repository.save_podcast(updated) is None:
            raise NotFoundError(f"podcast {podcast.id}")
        return updated

    async def delete_podcast(self, podcast_id: str, user_id: str) -> None:
        """Delete a podcast, its episodes and their audio objects."""
        await self._owned_podcast(podcast_id, user_id)
        episodes = await self.repository.list_episodes(podcast_id)
        for episode in episodes:
            await self.repository.delete_episode(podcast_id, episode.id)
            await self._discard_audio(episode.audio_object_name)
        await self.repository.delete_podcast(podcast_id)
        logger.info(f"Deleted podcast {podcast_id} with {len(episodes)} episodes")

    # --- Episodes ---

    async def list_episodes(self, podcast_id: str, user_id: str) -> list[Episode]:
        await self._owned_podcast(podcast_id, user_id)
        return await self.repository.list_episodes(podcast_id)

    async def get_episode(
        self, podcast_id: str, episode_id: str, user_id: str
    ) -> Episode:
        return await self._owned_episode(podcast_id, episode_id, user_id)

    async def create_episode(
        self,
        podcast_id: str,
        episode: Episode,
        audio: Optional[AudioContent],
        content_type: Optional[str],
        user_id: str,
        *,
        file_name: Optional[str] = None,
    ) -> Episode:
        """Upload an episode's audio, then persist the episode.

        Audio fields (URL, file name, size, MIME type) come from the stored
        object, not from the payload. If the upload fails nothing is
        persisted.
        """
        await self._owned_podcast(podcast_id, user_id)
        if audio is None:
            raise InvalidInputError("audio stream is required")
        _require_title(episode.title, "episode")
        if episode.download_count < 0:
            raise InvalidInputError("downloadCount must be non-negative")

        episode_id = new_id()
        name = clean_file_name(file_name or episode.audio_file_name)
        stored = await self.content_store.upload_file(
            self.audio_container,
            audio_object_name(podcast_id, episode_id, name),
            audio,
            content_type or episode.mime_type or DEFAULT_AUDIO_MIME_TYPE,
        )

        now = utcnow()
        created = episode.model_copy(
            update={
                "id": episode_id,
                "podcast_id": podcast_id,
                "audio_url": stored.url,
                "audio_file_name": name,
                "audio_object_name": stored.name,
                "file_size": stored.size,
                "mime_type": stored.content_type,
                "created_at": now,
                "updated_at": now,
            },
            deep=True,
        )
        try:
            await self.repository.add_episode(created)
        except Exception:
            logger.warning(
                f"Persisting episode {episode_id} failed; removing uploaded audio"
            )
            await self._discard_audio(stored.name)
            raise
        logger.info(
            f"Created episode {episode_id} in podcast {podcast_id} ({stored.size} bytes)"
        )
        return created

    async def update_episode(
        self, podcast_id: str, episode: Episode, user_id: str
    ) -> Episode:
        """Merge metadata from the payload into the stored episode.

        Audio fields, the download counter and identity are left alone;
        use `replace_episode_audio` to swap the audio.
        """
        existing = await self._owned_episode(podcast_id, episode.id, user_id)
        changes = {
            field: getattr(episode, field)
            for field in _EPISODE_MUTABLE_FIELDS
            if field in episode.model_fields_set
        }
        if "title" in changes:
            _require_title(changes["title"], "episode")
        changes["updated_at"] = utcnow()
        updated = existing.model_copy(update=changes, deep=True)
        if await self.repository.save_episode(updated) is None:
            raise NotFoundError(f"episode {episode.id}")
        return updated

    async def replace_episode_audio(
        self,
        podcast_id: str,
        episode_id: str,
        audio: Optional[AudioContent],
        content_type: Optional[str],
        user_id: str,
        *,
        file_name: Optional[str] = None,
    ) -> Episode:
        """Swap an episode's audio.

        The new object is uploaded under a fresh name; the old object is only
        deleted once the episode record points at the new one.
        """
        existing = await self._owned_episode(podcast_id, episode_id, user_id)
        if audio is None:
            raise InvalidInputError("audio stream is required")

        name = clean_file_name(file_name or existing.audio_file_name)
        stored = await self.content_store.upload_file(
            self.audio_container,
            audio_object_name(podcast_id, episode_id, name, revision=new_id()[:8]),
            audio,
            content_type or existing.mime_type or DEFAULT_AUDIO_MIME_TYPE,
        )
        updated = existing.model_copy(
            update={
                "audio_url": stored.url,
                "audio_file_name": name,
                "audio_object_name": stored.name,
                "file_size": stored.size,
                "mime_type": stored.content_type,
                "updated_at": utcnow(),
            }
        )
        try:
            saved = await self.repository.save_episode(updated)
        except Exception:
            logger.warning(
                f"Saving new audio for episode {episode_id} failed; keeping old audio"
            )
            await self._discard_audio(stored.name)
            raise
        if saved is None:
            logger.warning(
                f"Episode {episode_id} was deleted during audio replacement"
            )
            await self._discard_audio(stored.name)
            raise NotFoundError(f"episode {episode_id}")

        if existing.audio_object_name and existing.audio_object_name != stored.name:
            await self._discard_audio(existing.audio_object_name)
        return updated

    async def delete_episode(
        self, podcast_id: str, episode_id: str, user_id: str
    ) -> None:
        existing = await self._owned_episode(podcast_id, episode_id, user_id)
        if not await self.repository.delete_episode(podcast_id, episode_id):
            raise NotFoundError(f"episode {episode_id}")
        await self._discard_audio(existing.audio_object_name)
        logger.info(f"Deleted episode {episode_id} from podcast {podcast_id}")

    async def get_episode_audio(
        self, podcast_id: str, episode_id: str, user_id: str
    ) -> BinaryIO:
        episode = await self._owned_episode(podcast_id, episode_id, user_id)
        if not episode.audio_object_name:
            raise NotFoundError(f"audio for episode {episode_id}")
        return await self.content_store.download_file(
            self.audio_container, episode.audio_object_name
        )

    async def get_episode_audio_url(
        self, podcast_id: str, episode_id: str, user_id: str
    ) -> str:
        episode = await self._owned_episode(podcast_id, episode_id, user_id)
        if not episode.audio_object_name:
            raise NotFoundError(f"audio for episode {episode_id}")
        return await self.content_store.get_url(
            self.audio_container, episode.audio_object_name
        )

    async def record_download(
        self, podcast_id: str, episode_id: str, user_id: str
    ) -> Episode:
        """Count one download of an episode."""
        await self._owned_podcast(podcast_id, user_id)
        updated = await self.repository.increment_download_count(podcast_id, episode_id)
        if updated is None:
            raise NotFoundError(f"episode {episode_id}")
        return updated

    # --- Statistics ---

    async def get_podcast_stats(self, podcast_id: str, user_id: str) -> PodcastStats:
        await self._owned_podcast(podcast_id, user_id)
        episodes = await self.repository.list_episodes(podcast_id)
        return build_podcast_stats(podcast_id, episodes)

    # --- Helpers ---

    async def _owned_podcast(self, podcast_id: str, user_id: str) -> Podcast:
        podcast = await self.repository.get_podcast(podcast_id)
        # Not owned and absent look the same to the caller
        if podcast is None or podcast.owner_id != user_id:
            raise NotFoundError(f"podcast {podcast_id}")
        return podcast

    async def _owned_episode(
        self, podcast_id: str, episode_id: str, user_id: str
    ) -> Episode:
        await self._owned_podcast(podcast_id, user_id)
        episode = await self.repository.get_episode(podcast_id, episode_id)
        if episode is None:
            raise NotFoundError(f"episode {episode_id}")
        return episode

    async def _discard_audio(self, object_name: str) -> None:
        """Delete an audio object, tolerating one that is already gone.

        Storage failures are logged and left for out-of-band cleanup; the
        caller's record change has already happened.
        """
        if not object_name:
            return
        try:
            await self.content_store.delete_file(self.audio_container, object_name)
        except NotFoundError:
            logger.debug(f"Audio object {object_name} already absent")
        except StorageIOError:
            logger.warning(
                f"Could not delete audio object {object_name}; left for cleanup",
                exc_info=True,
            )
