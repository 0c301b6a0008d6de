"""Content storage for episode audio: S3 or local filesystem.

Objects are addressed by (container, name). For S3 a container is a bucket;
for the local backend it is a directory under the configured storage root.
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from podhost.config import Settings, settings as default_settings
from podhost.services.errors import InvalidInputError, NotFoundError, StorageIOError

logger = logging.getLogger(__name__)

Content = Union[bytes, BinaryIO]

_MISSING_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}

# Non-seekable uploads spill to disk past this size
_SPOOL_MAX_BYTES = 8 * 1024 * 1024


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful upload."""

    container: str
    name: str
    url: str
    size: int
    content_type: str


def _as_stream(content: Content) -> tuple[BinaryIO, int]:
    """Return a readable stream positioned at the start plus its size in bytes."""
    if isinstance(content, (bytes, bytearray)):
        return io.BytesIO(content), len(content)
    if content.seekable():
        start = content.tell()
        size = content.seek(0, os.SEEK_END) - start
        content.seek(start)
        return content, size
    spooled = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)
    shutil.copyfileobj(content, spooled)
    size = spooled.tell()
    spooled.seek(0)
    return spooled, size  # type: ignore[return-value]


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


class ContentStore(ABC):
    """Durable blob storage keyed by container + name."""

    @abstractmethod
    async def upload_file(
        self, container: str, name: str, content: Content, content_type: str
    ) -> StoredObject:
        """Store a byte stream, overwriting any object with the same name."""

    @abstractmethod
    async def download_file(self, container: str, name: str) -> BinaryIO:
        """Return the object's bytes as a readable stream."""

    @abstractmethod
    async def delete_file(self, container: str, name: str) -> None:
        """Remove an object; raises NotFoundError if it does not exist."""

    @abstractmethod
    async def get_url(self, container: str, name: str) -> str:
        """Resolve a retrievable locator without transferring bytes."""

    @abstractmethod
    async def exists(self, container: str, name: str) -> bool:
        """Return True when the object exists."""

    @abstractmethod
    async def ensure_container(self, container: str) -> None:
        """Create the container if needed. Safe to call repeatedly."""


class S3ContentStore(ContentStore):
    """Content store backed by boto3.

    Supports both AWS S3 and S3-compatible services (Tigris, R2, MinIO).
    boto3 is blocking, so every call runs in a worker thread.
    """

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.config = config or default_settings
        self.public_url_base = self.config.s3_public_url_base
        self._client = None

    @property
    def client(self):
        """Lazily initialize the S3 client."""
        if self._client is None:
            client_kwargs: dict[str, str] = {
                "region_name": self.config.s3_region,
            }
            if self.config.s3_access_key_id and self.config.s3_secret_access_key:
                client_kwargs["aws_access_key_id"] = self.config.s3_access_key_id
                client_kwargs["aws_secret_access_key"] = self.config.s3_secret_access_key
            if self.config.s3_endpoint_url:
                client_kwargs["endpoint_url"] = self.config.s3_endpoint_url

            self._client = boto3.client("s3", **client_kwargs)
        return self._client

    async def upload_file(
        self, container: str, name: str, content: Content, content_type: str
    ) -> StoredObject:
        stream, size = _as_stream(content)
        try:
            await asyncio.to_thread(
                self.client.upload_fileobj,
                stream,
                container,
                name,
                ExtraArgs={"ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {name} to S3 bucket {container}: {e}")
            raise StorageIOError(f"upload failed for {container}/{name}") from e
        finally:
            if stream is not content:
                stream.close()
        logger.info(f"Uploaded {name} ({size} bytes) to S3 bucket {container}")
        return StoredObject(
            container=container,
            name=name,
            url=self._public_url(container, name),
            size=size,
            content_type=content_type,
        )

    async def download_file(self, container: str, name: str) -> BinaryIO:
        def _download() -> BinaryIO:
            response = self.client.get_object(Bucket=container, Key=name)
            # botocore StreamingBody: read(n) pulls from the open connection
            return response["Body"]

        try:
            return await asyncio.to_thread(_download)
        except ClientError as e:
            if _is_missing(e):
                raise NotFoundError(f"{container}/{name}") from e
            raise StorageIOError(f"download failed for {container}/{name}") from e
        except BotoCoreError as e:
            raise StorageIOError(f"download failed for {container}/{name}") from e

    async def delete_file(self, container: str, name: str) -> None:
        # delete_object succeeds for absent keys, so check first
        if not await self.exists(container, name):
            raise NotFoundError(f"{container}/{name}")
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=container, Key=name)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete {name} from S3 bucket {container}: {e}")
            raise StorageIOError(f"delete failed for {container}/{name}") from e
        logger.info(f"Deleted {name} from S3 bucket {container}")

    async def get_url(self, container: str, name: str) -> str:
        return self._public_url(container, name)

    async def exists(self, container: str, name: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=container, Key=name)
            return True
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageIOError(f"head failed for {container}/{name}") from e
        except BotoCoreError as e:
            raise StorageIOError(f"head failed for {container}/{name}") from e

    async def ensure_container(self, container: str) -> None:
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=container)
            return
        except ClientError as e:
            if not _is_missing(e):
                raise StorageIOError(f"cannot access bucket {container}") from e
        except BotoCoreError as e:
            raise StorageIOError(f"cannot access bucket {container}") from e

        create_kwargs: dict = {"Bucket": container}
        if self.config.s3_region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self.config.s3_region
            }
        try:
            await asyncio.to_thread(self.client.create_bucket, **create_kwargs)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code"))
            if code not in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                raise StorageIOError(f"cannot create bucket {container}") from e
        except BotoCoreError as e:
            raise StorageIOError(f"cannot create bucket {container}") from e
        logger.info(f"Created S3 bucket {container}")

    def _public_url(self, container: str, name: str) -> str:
        """Return public URL for an object.

        Uses the configured public URL base (CDN) if available, otherwise
        constructs a direct S3 URL.
        """
        if self.public_url_base:
            base = self.public_url_base.rstrip("/")
            return f"{base}/{name}"

        if self.config.s3_endpoint_url:
            endpoint = self.config.s3_endpoint_url.rstrip("/")
            return f"{endpoint}/{container}/{name}"

        return f"https://{container}.s3.{self.config.s3_region}.amazonaws.com/{name}"


class LocalContentStore(ContentStore):
    """Content store on the local filesystem (dev mode)."""

    def __init__(self, root: Union[str, Path], url_prefix: str = "/media") -> None:
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip("/")

    def _path(self, container: str, name: str) -> Path:
        path = (self.root / container / name).resolve()
        if not path.is_relative_to(self.root / container):
            raise InvalidInputError(f"object name escapes its container: {name}")
        return path

    async def upload_file(
        self, container: str, name: str, content: Content, content_type: str
    ) -> StoredObject:
        path = self._path(container, name)

        def _write() -> int:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                if isinstance(content, (bytes, bytearray)):
                    f.write(content)
                else:
                    shutil.copyfileobj(content, f)
            return path.stat().st_size

        try:
            size = await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Failed to save {container}/{name} locally: {e}")
            raise StorageIOError(f"upload failed for {container}/{name}") from e
        logger.info(f"Saved {container}/{name} to local filesystem")
        return StoredObject(
            container=container,
            name=name,
            url=await self.get_url(container, name),
            size=size,
            content_type=content_type,
        )

    async def download_file(self, container: str, name: str) -> BinaryIO:
        path = self._path(container, name)
        try:
            return await asyncio.to_thread(open, path, "rb")
        except FileNotFoundError as e:
            raise NotFoundError(f"{container}/{name}") from e
        except OSError as e:
            raise StorageIOError(f"download failed for {container}/{name}") from e

    async def delete_file(self, container: str, name: str) -> None:
        path = self._path(container, name)
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError as e:
            raise NotFoundError(f"{container}/{name}") from e
        except OSError as e:
            raise StorageIOError(f"delete failed for {container}/{name}") from e
        logger.info(f"Deleted {container}/{name} from local filesystem")

    async def get_url(self, container: str, name: str) -> str:
        return f"{self.url_prefix}/{container}/{name}"

    async def exists(self, container: str, name: str) -> bool:
        return self._path(container, name).is_file()

    async def ensure_container(self, container: str) -> None:
        try:
            (self.root / container).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"cannot create container {container}") from e


def build_content_store(config: Optional[Settings] = None) -> ContentStore:
    """Pick the storage backend the settings ask for."""
    config = config or default_settings
    if config.storage_local:
        return LocalContentStore(config.local_storage_root, config.local_url_prefix)
    return S3ContentStore(config)
