"""Podcast episodes table."""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime, Text
from sqlmodel import Field, SQLModel

from podhost.models.fields import utcnow


class EpisodeRecord(SQLModel, table=True):  # type: ignore[call-arg]
    """Persisted episode metadata plus the locator of its stored audio."""

    __tablename__ = "episodes"

    id: str = Field(primary_key=True)
    podcast_id: str = Field(foreign_key="podcasts.id", index=True)
    title: str
    description: str = Field(default="", sa_column=Column(Text, nullable=False))

    # Stored audio
    audio_url: str = Field(default="")
    audio_file_name: str = Field(default="")
    audio_object_name: str = Field(default="")  # content-store key
    duration: timedelta = Field(default=timedelta(0))
    file_size: int = Field(default=0, sa_column=Column(BigInteger, nullable=False))
    mime_type: str = Field(default="audio/mpeg")

    season: Optional[int] = Field(default=None)
    episode_number: Optional[int] = Field(default=None)
    explicit: bool = Field(default=False)
    image_url: str = Field(default="")
    download_count: int = Field(default=0)

    # Timestamps (naive UTC)
    publish_date: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
