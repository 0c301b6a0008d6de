"""Unit tests for the JSON shape of podcast models."""

from datetime import UTC, datetime, timedelta, timezone

from podhost.models.podcasts import Episode, EpisodeStat, Podcast, PodcastStats

PODCAST_KEYS = {
    "id",
    "title",
    "description",
    "author",
    "email",
    "imageUrl",
    "categories",
    "websiteUrl",
    "language",
    "explicit",
    "ownerId",
    "createdAt",
    "updatedAt",
    "rssUrl",
}

EPISODE_KEYS = {
    "id",
    "podcastId",
    "title",
    "description",
    "audioUrl",
    "audioFileName",
    "duration",
    "fileSize",
    "mimeType",
    "season",
    "episode",
    "publishDate",
    "createdAt",
    "updatedAt",
    "explicit",
    "imageUrl",
    "downloadCount",
}


class TestPodcastModel:
    def test_defaults(self) -> None:
        podcast = Podcast()
        assert podcast.language == "en-us"
        assert podcast.explicit is False
        assert podcast.categories == []
        assert podcast.id

    def test_each_instance_gets_a_fresh_id(self) -> None:
        assert Podcast().id != Podcast().id

    def test_json_keys_are_camel_case(self) -> None:
        data = Podcast(title="Tech Talk").model_dump(mode="json", by_alias=True)
        assert set(data) == PODCAST_KEYS

    def test_accepts_camel_case_input(self) -> None:
        podcast = Podcast.model_validate(
            {"title": "Tech Talk", "websiteUrl": "https://tt.example", "ownerId": "u1"}
        )
        assert podcast.website_url == "https://tt.example"
        assert podcast.owner_id == "u1"

    def test_timestamps_serialize_as_utc_iso(self) -> None:
        podcast = Podcast(created_at=datetime(2024, 3, 10, 8, 30))
        data = podcast.model_dump(mode="json", by_alias=True)
        assert data["createdAt"] == "2024-03-10T08:30:00Z"

    def test_aware_timestamps_normalized_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        podcast = Podcast(created_at=datetime(2024, 3, 10, 10, 30, tzinfo=plus_two))
        assert podcast.created_at == datetime(2024, 3, 10, 8, 30)
        assert podcast.created_at.tzinfo is None


class TestEpisodeModel:
    def test_defaults(self) -> None:
        episode = Episode()
        assert episode.mime_type == "audio/mpeg"
        assert episode.download_count == 0
        assert episode.duration == timedelta(0)
        assert episode.season is None
        assert episode.episode_number is None

    def test_json_keys(self) -> None:
        data = Episode(title="Pilot").model_dump(mode="json", by_alias=True)
        assert set(data) == EPISODE_KEYS

    def test_episode_number_uses_episode_key(self) -> None:
        episode = Episode.model_validate({"episode": 4, "season": 2})
        assert episode.episode_number == 4
        assert episode.model_dump(by_alias=True)["episode"] == 4

    def test_duration_serializes_as_time_span(self) -> None:
        episode = Episode(duration=timedelta(minutes=45, seconds=30))
        data = episode.model_dump(mode="json", by_alias=True)
        assert data["duration"].startswith("PT")
        parsed = Episode.model_validate({"duration": data["duration"]})
        assert parsed.duration == timedelta(minutes=45, seconds=30)

    def test_duration_parses_time_span(self) -> None:
        episode = Episode.model_validate({"duration": "PT1H2M3S"})
        assert episode.duration == timedelta(hours=1, minutes=2, seconds=3)

    def test_storage_key_never_serialized(self) -> None:
        episode = Episode(audio_object_name="p1/e1/a.mp3")
        assert "audioObjectName" not in episode.model_dump(by_alias=True)
        assert "audio_object_name" not in episode.model_dump()


class TestPodcastStatsModel:
    def test_json_keys(self) -> None:
        stats = PodcastStats(
            podcast_id="p1",
            total_storage_bytes=2048,
            episode_stats=[
                EpisodeStat(
                    episode_id="e1",
                    title="Pilot",
                    downloads=5,
                    publish_date=datetime(2024, 3, 10, tzinfo=UTC),
                )
            ],
        )
        data = stats.model_dump(mode="json", by_alias=True)
        assert set(data) == {
            "podcastId",
            "totalDownloads",
            "totalEpisodes",
            "totalStorage",
            "totalStorageFormatted",
            "episodeStats",
            "downloadsByMonth",
            "lastUpdated",
        }
        assert data["totalStorage"] == 2048
        assert data["episodeStats"][0] == {
            "episodeId": "e1",
            "title": "Pilot",
            "downloads": 5,
            "publishDate": "2024-03-10T00:00:00Z",
        }
