"""
Blob storage for meeting audio: local filesystem or S3
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from meeting_copilot.config import settings
from meeting_copilot.core.exceptions import ConfigurationException, StorageException
from meeting_copilot.core.logging import storage_logger as logger

AUDIO_PREFIX = "audio"


class StorageBackend(ABC):
    """Object store interface"""

    @abstractmethod
    async def put(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Write (or overwrite) an object and return its durable URL."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete an object"""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether an object exists"""

    @abstractmethod
    def url_for(self, key: str) -> str:
        """Public URL of an object"""

    @abstractmethod
    def key_for_url(self, url: str) -> Optional[str]:
        """Inverse of ``url_for``; None when the URL is not ours"""

    async def create_upload_target(
        self, key: str, content_type: str, max_size: int, expires_in: int
    ) -> Dict[str, Any]:
        """Signed target a client can upload to directly."""
        raise ConfigurationException("Blob storage not configured")


class LocalStorageBackend(StorageBackend):
    """Filesystem backend, served under ``/files``"""

    url_prefix = "/files/"

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        full_path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in full_path.parents:
            raise StorageException(f"Invalid object key: {key}")
        return full_path

    async def put(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        full_path = self._get_full_path(key)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, full_path.write_bytes, content)
        except OSError as e:
            raise StorageException(f"Failed to write {key}: {e}") from e
        return self.url_for(key)

    async def delete(self, key: str) -> bool:
        full_path = self._get_full_path(key)
        if not full_path.exists():
            return False
        try:
            full_path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete {key}: {e}")
            return False
        return True

    async def exists(self, key: str) -> bool:
        return self._get_full_path(key).exists()

    def read(self, key: str) -> bytes:
        return self._get_full_path(key).read_bytes()

    def url_for(self, key: str) -> str:
        return f"{self.url_prefix}{key}"

    def key_for_url(self, url: str) -> Optional[str]:
        if url and url.startswith(self.url_prefix):
            return url[len(self.url_prefix):]
        return None


class S3StorageBackend(StorageBackend):
    """S3 backend"""

    def __init__(self, bucket_name: str, region_name: str = "us-east-1", client=None):
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.s3_client = client or boto3.client(
            "s3",
            region_name=region_name,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )

    async def put(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        upload_args = {"Bucket": self.bucket_name, "Key": key, "Body": content}
        if content_type:
            upload_args["ContentType"] = content_type

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, lambda: self.s3_client.put_object(**upload_args))
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise StorageException(f"S3 upload failed: {e}") from e
        return self.url_for(key)

    async def delete(self, key: str) -> bool:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, lambda: self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            )
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 delete failed for {key}: {e}")
            return False

    async def exists(self, key: str) -> bool:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, lambda: self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            )
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                return False
            logger.error(f"S3 head_object failed for {key}: {e}")
            return False

    @property
    def _base_url(self) -> str:
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/"

    def url_for(self, key: str) -> str:
        return f"{self._base_url}{key}"

    def key_for_url(self, url: str) -> Optional[str]:
        if not url or not url.startswith(self._base_url):
            return None
        return urlparse(url).path.lstrip("/")

    async def create_upload_target(
        self, key: str, content_type: str, max_size: int, expires_in: int
    ) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        try:
            post = await loop.run_in_executor(
                None,
                lambda: self.s3_client.generate_presigned_post(
                    Bucket=self.bucket_name,
                    Key=key,
                    Fields={"Content-Type": content_type},
                    Conditions=[
                        {"Content-Type": content_type},
                        ["content-length-range", 1, max_size],
                    ],
                    ExpiresIn=expires_in,
                ),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to presign upload for {key}: {e}")
            raise StorageException(f"Failed to create upload URL: {e}") from e
        return {"url": post["url"], "fields": post["fields"], "blob_url": self.url_for(key)}


def audio_object_key(meeting_id: str, extension: str, is_partial: bool) -> str:
    """
    Deterministic key for a meeting recording.

    Partial uploads all target ``{id}-temp.{ext}`` so each one overwrites the
    previous; the final upload goes to ``{id}-live.{ext}``.
    """
    suffix = "temp" if is_partial else "live"
    return f"{AUDIO_PREFIX}/{meeting_id}-{suffix}.{extension}"


class FileStorageManager:
    """Chooses the backend and names the objects"""

    def __init__(self, backend: Optional[StorageBackend] = None):
        self.backend = backend or self._default_backend()

    @staticmethod
    def _default_backend() -> StorageBackend:
        if settings.blob_storage_enabled:
            return S3StorageBackend(
                bucket_name=settings.blob_bucket_name, region_name=settings.aws_region
            )
        return LocalStorageBackend(settings.upload_dir)

    async def save_meeting_audio(
        self,
        meeting_id: str,
        content: bytes,
        filename: Optional[str],
        content_type: Optional[str],
        is_partial: bool,
        previous_url: Optional[str] = None,
    ) -> str:
        extension = Path(filename or "").suffix.lstrip(".").lower() or "webm"
        key = audio_object_key(meeting_id, extension, is_partial)
        url = await self.backend.put(key, content, content_type)
        if not is_partial:
            # The final recording supersedes the partial ones
            stale = {audio_object_key(meeting_id, extension, True)}
            previous_key = self.backend.key_for_url(previous_url) if previous_url else None
            if previous_key and previous_key != key:
                stale.add(previous_key)
            for stale_key in sorted(stale):
                await self.backend.delete(stale_key)
        logger.info(
            f"Stored {'partial' if is_partial else 'final'} audio for meeting {meeting_id} "
            f"({len(content)} bytes) at {key}"
        )
        return url

    async def delete_meeting_audio(self, meeting_id: str, audio_path: Optional[str]) -> bool:
        """
        Delete every recording object of a meeting.

        Returns False when the object behind ``audio_path`` could not be deleted.
        """
        recorded_key = self.backend.key_for_url(audio_path) if audio_path else None
        if recorded_key:
            deleted = await self.backend.delete(recorded_key)
        else:
            deleted = not audio_path

        extension = Path(recorded_key or "").suffix.lstrip(".") or "webm"
        for is_partial in (True, False):
            key = audio_object_key(meeting_id, extension, is_partial)
            if key != recorded_key:
                await self.backend.delete(key)
        return deleted

    async def create_upload_target(self, filename: str, content_type: str) -> Dict[str, Any]:
        key = f"uploads/{uuid.uuid4().hex}-{Path(filename).name}"
        return await self.backend.create_upload_target(
            key,
            content_type,
            max_size=settings.max_upload_size,
            expires_in=settings.upload_url_expires_in,
        )


@lru_cache()
def get_storage_manager() -> FileStorageManager:
    return FileStorageManager()
