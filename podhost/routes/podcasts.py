"""Podcast hosting API routes.

Thin adapter over `PodcastService`: parses requests, passes the caller
identity through, and lets the app-level handlers map service errors to
status codes.
"""

from typing import BinaryIO, Iterator, Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from starlette.responses import Response

from podhost.models.podcasts import Episode, EpisodeAudioUrl, Podcast, PodcastStats
from podhost.services.errors import InvalidInputError
from podhost.services.podcast_service import PodcastService

router = APIRouter(prefix="/podcasts", tags=["podcasts"])

_CHUNK_SIZE = 64 * 1024


def get_podcast_service(request: Request) -> PodcastService:
    """Return the service built during application startup."""
    return request.app.state.podcast_service


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Resolve the opaque caller identity set by the upstream gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()


def _parse_episode_metadata(metadata: Optional[str]) -> Episode:
    if not metadata:
        return Episode()
    try:
        return Episode.model_validate_json(metadata)
    except ValidationError as exc:
        raise InvalidInputError("Invalid episode data.") from exc


def _iter_stream(stream: BinaryIO) -> Iterator[bytes]:
    try:
        while chunk := stream.read(_CHUNK_SIZE):
            yield chunk
    finally:
        stream.close()


@router.get("", response_model=list[Podcast])
async def list_podcasts(
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> list[Podcast]:
    """List the caller's podcasts."""
    return await service.list_podcasts(user_id)


@router.post("", response_model=Podcast, status_code=201)
async def create_podcast(
    podcast: Podcast,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Podcast:
    """Create a podcast owned by the caller."""
    return await service.create_podcast(podcast, user_id)


@router.get("/{podcast_id}", response_model=Podcast)
async def get_podcast(
    podcast_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Podcast:
    return await service.get_podcast(podcast_id, user_id)


@router.put("/{podcast_id}", response_model=Podcast)
async def update_podcast(
    podcast_id: str,
    podcast: Podcast,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Podcast:
    """Update podcast metadata; the path id wins over any id in the body."""
    return await service.update_podcast(
        podcast.model_copy(update={"id": podcast_id}), user_id
    )


@router.delete("/{podcast_id}", status_code=204)
async def delete_podcast(
    podcast_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Response:
    """Delete a podcast together with its episodes and audio."""
    await service.delete_podcast(podcast_id, user_id)
    return Response(status_code=204)


@router.get("/{podcast_id}/stats", response_model=PodcastStats)
async def get_podcast_stats(
    podcast_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> PodcastStats:
    return await service.get_podcast_stats(podcast_id, user_id)


@router.get("/{podcast_id}/episodes", response_model=list[Episode])
async def list_episodes(
    podcast_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> list[Episode]:
    return await service.list_episodes(podcast_id, user_id)


@router.post("/{podcast_id}/episodes", response_model=Episode, status_code=201)
async def create_episode(
    podcast_id: str,
    metadata: Optional[str] = Form(default=None),
    audio: Optional[UploadFile] = File(default=None),
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Episode:
    """Create an episode from a multipart form.

    Expects a `metadata` field holding the episode JSON and an `audio` file.
    """
    episode = _parse_episode_metadata(metadata)
    return await service.create_episode(
        podcast_id,
        episode,
        audio.file if audio is not None else None,
        audio.content_type if audio is not None else None,
        user_id,
        file_name=audio.filename if audio is not None else None,
    )


@router.get("/{podcast_id}/episodes/{episode_id}", response_model=Episode)
async def get_episode(
    podcast_id: str,
    episode_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Episode:
    return await service.get_episode(podcast_id, episode_id, user_id)


@router.put("/{podcast_id}/episodes/{episode_id}", response_model=Episode)
async def update_episode(
    podcast_id: str,
    episode_id: str,
    episode: Episode,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Episode:
    """Update episode metadata; audio is replaced through the audio endpoint."""
    return await service.update_episode(
        podcast_id, episode.model_copy(update={"id": episode_id}), user_id
    )


@router.put("/{podcast_id}/episodes/{episode_id}/audio", response_model=Episode)
async def replace_episode_audio(
    podcast_id: str,
    episode_id: str,
    audio: Optional[UploadFile] = File(default=None),
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Episode:
    return await service.replace_episode_audio(
        podcast_id,
        episode_id,
        audio.file if audio is not None else None,
        audio.content_type if audio is not None else None,
        user_id,
        file_name=audio.filename if audio is not None else None,
    )


@router.delete("/{podcast_id}/episodes/{episode_id}", status_code=204)
async def delete_episode(
    podcast_id: str,
    episode_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> Response:
    await service.delete_episode(podcast_id, episode_id, user_id)
    return Response(status_code=204)


@router.get("/{podcast_id}/episodes/{episode_id}/audio")
async def get_episode_audio(
    podcast_id: str,
    episode_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> StreamingResponse:
    """Stream an episode's audio and count the download."""
    episode = await service.get_episode(podcast_id, episode_id, user_id)
    stream = await service.get_episode_audio(podcast_id, episode_id, user_id)
    try:
        await service.record_download(podcast_id, episode_id, user_id)
    except Exception:
        stream.close()
        raise
    headers = {"Content-Disposition": f'inline; filename="{episode.audio_file_name}"'}
    return StreamingResponse(
        _iter_stream(stream), media_type=episode.mime_type, headers=headers
    )


@router.get(
    "/{podcast_id}/episodes/{episode_id}/audio-url", response_model=EpisodeAudioUrl
)
async def get_episode_audio_url(
    podcast_id: str,
    episode_id: str,
    user_id: str = Depends(get_user_id),
    service: PodcastService = Depends(get_podcast_service),
) -> EpisodeAudioUrl:
    url = await service.get_episode_audio_url(podcast_id, episode_id, user_id)
    return EpisodeAudioUrl(url=url)
