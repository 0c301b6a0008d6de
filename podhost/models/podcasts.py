"""Pydantic models for podcasts, episodes and their statistics.

These are the shapes the service returns and the HTTP layer serializes.
Attribute names are snake_case; the JSON representation uses the camelCase
keys published API consumers depend on.
"""

import uuid
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from podhost.models.fields import UTC_DATETIME, utcnow

DEFAULT_LANGUAGE = "en-us"
DEFAULT_AUDIO_MIME_TYPE = "audio/mpeg"


def new_id() -> str:
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Base model emitting camelCase JSON while accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Podcast(CamelModel):
    """A show owned by a single caller identity."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    description: str = ""
    author: str = ""
    email: str = ""
    image_url: str = ""
    categories: list[str] = Field(default_factory=list)
    website_url: str = ""
    language: str = DEFAULT_LANGUAGE
    explicit: bool = False
    owner_id: str = ""
    created_at: UTC_DATETIME = Field(default_factory=utcnow)
    updated_at: UTC_DATETIME = Field(default_factory=utcnow)
    rss_url: str = ""


class Episode(CamelModel):
    """A single audio installment of a podcast."""

    id: str = Field(default_factory=new_id)
    podcast_id: str = ""
    title: str = ""
    description: str = ""
    audio_url: str = ""
    audio_file_name: str = ""
    duration: timedelta = timedelta(0)
    file_size: int = 0
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE
    season: Optional[int] = None
    episode_number: Optional[int] = Field(default=None, alias="episode")
    publish_date: UTC_DATETIME = Field(default_factory=utcnow)
    created_at: UTC_DATETIME = Field(default_factory=utcnow)
    updated_at: UTC_DATETIME = Field(default_factory=utcnow)
    explicit: bool = False
    image_url: str = ""
    download_count: int = 0
    # Content-store key of the current audio object; never serialized
    audio_object_name: str = Field(default="", exclude=True)


class EpisodeStat(CamelModel):
    """Per-episode line in a stats snapshot."""

    episode_id: str
    title: str
    downloads: int
    publish_date: UTC_DATETIME


class PodcastStats(CamelModel):
    """Aggregated, computed-on-demand statistics for one podcast."""

    podcast_id: str
    total_downloads: int = 0
    total_episodes: int = 0
    total_storage_bytes: int = Field(default=0, alias="totalStorage")
    total_storage_formatted: str = "0 B"
    episode_stats: list[EpisodeStat] = Field(default_factory=list)
    downloads_by_month: dict[str, int] = Field(default_factory=dict)
    last_updated: UTC_DATETIME = Field(default_factory=utcnow)


class EpisodeAudioUrl(BaseModel):
    """Response model for a resolved audio locator."""

    url: str
