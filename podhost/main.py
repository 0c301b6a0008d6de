"""
Main entry point for FastAPI application.
"""
from contextlib import asynccontextmanager
import os

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from podhost.routes import podcasts
from podhost.services.content_store import build_content_store
from podhost.services.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PodcastServiceError,
    StorageIOError,
)
from podhost.services.podcast_service import PodcastService
from podhost.services.repository import SqlPodcastRepository
from podhost.utils.db_async import (
    DATABASE_URL,
    SessionLocal,
    describe_database_url,
    dispose_engine,
    init_db,
)

from podhost.logging_config import setup_logging
from podhost.config import Settings, settings

import logging
logger = logging.getLogger(__name__)

setup_logging(level=settings.log_level, access_log=settings.access_log)

_ERROR_STATUS = {
    InvalidInputError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    StorageIOError: 502,
}


def build_podcast_service() -> PodcastService:
    """Wire the service with its persistence and storage collaborators."""
    return PodcastService(
        SqlPodcastRepository(SessionLocal),
        build_content_store(settings),
        audio_container=settings.audio_container,
        public_base_url=settings.public_base_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    should_init_db = (
        settings.is_dev
        and settings.auto_init_db
        and not os.getenv("FLY_APP_NAME")
    )

    if should_init_db:
        logger.info("Running init_db()…")
        logger.info(f"DB target: {describe_database_url(DATABASE_URL)}")
        try:
            await init_db()
            logger.info("DB ready.")
        except Exception:
            logger.exception("init_db failed")
            raise
    else:
        logger.info("Skipping init_db(); auto_init_db disabled or managed deployment detected")

    service = build_podcast_service()
    await service.prepare()
    app.state.podcast_service = service

    yield

    try:
        logger.info("Disposing DB engine…")
        await dispose_engine()
        logger.info("DB engine disposed.")
    except Exception:
        logger.exception("Failed to dispose DB engine")


def mount_local_media(app: FastAPI, config: Settings) -> bool:
    """Serve locally stored audio under the URLs the local store hands out.

    Dev only: this origin is public, skips the owner check and does not
    count downloads. Other environments serve audio through
    GET /podcasts/{pid}/episodes/{eid}/audio.
    """
    if not (config.storage_local and config.is_dev):
        return False
    app.mount(
        config.local_url_prefix,
        StaticFiles(directory=config.local_storage_root, check_dir=False),
        name="media",
    )
    return True


app = FastAPI(title="Podhost", lifespan=lifespan)
app.include_router(podcasts.router)
mount_local_media(app, settings)


@app.exception_handler(PodcastServiceError)
async def podcast_service_error_handler(
    request: Request, exc: PodcastServiceError
) -> JSONResponse:
    status_code = next(
        (code for cls, code in _ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    if status_code >= 500:
        logger.exception(f"{request.method} {request.url.path} failed", exc_info=exc)
    detail = "Not found" if status_code == 404 else str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request body.", "errors": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
async def health_check():
    """Health Check Endpoint"""
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
