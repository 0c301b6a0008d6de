"""Podcast statistics aggregation.

Pure functions: given a podcast's episodes, build a `PodcastStats` snapshot.
Nothing here touches storage or the database.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from podhost.models.fields import utcnow
from podhost.models.podcasts import Episode, EpisodeStat, PodcastStats

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: int) -> str:
    """Convert a byte count to a human-readable size.

    Divides by 1024 until the value drops below 1024, stopping at TB
    regardless of magnitude. At most two fractional digits are shown and
    trailing zeros are trimmed.

    Args:
        num_bytes: Non-negative size in bytes

    Returns:
        Formatted string like "0 B", "1 KB" or "1.5 KB"
    """
    if num_bytes < 0:
        raise ValueError("num_bytes must be non-negative")
    value = float(num_bytes)
    order = 0
    while value >= 1024 and order < len(_SIZE_UNITS) - 1:
        order += 1
        value /= 1024
    value = round(value, 2)
    # 1023.999 KB rounds up to 1024; carry it into the next unit
    if value >= 1024 and order < len(_SIZE_UNITS) - 1:
        order += 1
        value = round(value / 1024, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[order]}"


def month_key(moment: datetime) -> str:
    """Return the "YYYY-MM" bucket key for a timestamp."""
    return f"{moment.year:04d}-{moment.month:02d}"


def build_podcast_stats(
    podcast_id: str,
    episodes: Sequence[Episode],
    now: Optional[datetime] = None,
) -> PodcastStats:
    """Aggregate a podcast's episodes into a stats snapshot.

    Each episode's current download count is attributed to the month of its
    publish date; there is no per-download event log to bucket instead.
    """
    total_bytes = sum(e.file_size for e in episodes)

    downloads_by_month: dict[str, int] = {}
    for episode in episodes:
        key = month_key(episode.publish_date)
        downloads_by_month[key] = downloads_by_month.get(key, 0) + episode.download_count

    return PodcastStats(
        podcast_id=podcast_id,
        total_downloads=sum(e.download_count for e in episodes),
        total_episodes=len(episodes),
        total_storage_bytes=total_bytes,
        total_storage_formatted=format_bytes(total_bytes),
        episode_stats=[
            EpisodeStat(
                episode_id=e.id,
                title=e.title,
                downloads=e.download_count,
                publish_date=e.publish_date,
            )
            for e in episodes
        ],
        downloads_by_month=dict(sorted(downloads_by_month.items())),
        last_updated=now or utcnow(),
    )
