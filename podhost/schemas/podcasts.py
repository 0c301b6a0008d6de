"""Podcast show table."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel

from podhost.models.fields import utcnow


class PodcastRecord(SQLModel, table=True):  # type: ignore[call-arg]
    """Persisted podcast show.

    `owner_id` is the opaque caller identity that created the show; every
    read and write is filtered by it.
    """

    __tablename__ = "podcasts"

    id: str = Field(primary_key=True)
    owner_id: str = Field(index=True)
    title: str
    description: str = Field(default="", sa_column=Column(Text, nullable=False))
    author: str = Field(default="")
    email: str = Field(default="")
    image_url: str = Field(default="")
    categories: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    website_url: str = Field(default="")
    language: str = Field(default="en-us")
    explicit: bool = Field(default=False)
    rss_url: str = Field(default="")
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
