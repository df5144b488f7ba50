from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Protocol, TypeVar

from minio import Minio
from minio.error import S3Error

if TYPE_CHECKING:
    from spacetwo.core.config import Settings


class BlobStoreError(Exception):
    """A blob area rejected the operation (bucket missing, policy, quota...)."""


@dataclass(frozen=True)
class BlobInfo:
    key: str
    last_modified: datetime | None
    size: int | None = None


class BlobStore(Protocol):
    def bucket_exists(self, bucket: str) -> bool: ...

    def create_signed_upload_url(self, bucket: str, key: str, ttl_seconds: int) -> str: ...

    def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str: ...

    def exists(self, bucket: str, key: str) -> bool: ...

    def list_objects(self, bucket: str, prefix: str = "") -> list[BlobInfo]: ...

    def remove(self, bucket: str, key: str) -> None: ...


class MinioBlobStore:
    """S3-compatible blob store backed by MinIO presigned URLs.

    Constructed explicitly and handed to callers; nothing in the library
    reaches for a process-wide client.
    """

    def __init__(self, client: Minio) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "MinioBlobStore":
        return cls(
            Minio(
                endpoint=settings.MINIO_ENDPOINT,
                access_key=settings.MINIO_ACCESS_KEY,
                secret_key=settings.MINIO_SECRET_KEY,
                secure=settings.MINIO_SECURE,
            )
        )

    def bucket_exists(self, bucket: str) -> bool:
        try:
            return bool(self._client.bucket_exists(bucket))
        except S3Error as e:
            raise BlobStoreError(f"{bucket}: {e.code}") from e

    def create_signed_upload_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        # Presigning is computed locally; check the bucket so a missing area fails here.
        self._require_bucket(bucket)
        try:
            return self._client.presigned_put_object(bucket, key, expires=timedelta(seconds=ttl_seconds))
        except S3Error as e:
            raise BlobStoreError(f"{bucket}/{key}: {e.code}") from e

    def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        try:
            return self._client.presigned_get_object(bucket, key, expires=timedelta(seconds=ttl_seconds))
        except S3Error as e:
            raise BlobStoreError(f"{bucket}/{key}: {e.code}") from e

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self._client.stat_object(bucket, key)
            return True
        except S3Error as e:
            if e.code in {"NoSuchKey", "NoSuchObject", "NoSuchBucket"}:
                return False
            raise BlobStoreError(f"{bucket}/{key}: {e.code}") from e

    def list_objects(self, bucket: str, prefix: str = "") -> list[BlobInfo]:
        try:
            return [
                BlobInfo(key=o.object_name, last_modified=o.last_modified, size=o.size)
                for o in self._client.list_objects(bucket, prefix=prefix or None, recursive=True)
                if not o.is_dir
            ]
        except S3Error as e:
            raise BlobStoreError(f"{bucket}: {e.code}") from e

    def remove(self, bucket: str, key: str) -> None:
        try:
            self._client.remove_object(bucket, key)
        except S3Error as e:
            raise BlobStoreError(f"{bucket}/{key}: {e.code}") from e

    def ensure_bucket(self, bucket: str) -> None:
        def _op() -> None:
            if not self._client.bucket_exists(bucket):
                self._client.make_bucket(bucket)

        _with_retry(_op, attempts=3)

    def _require_bucket(self, bucket: str) -> None:
        if not self.bucket_exists(bucket):
            raise BlobStoreError(f"{bucket}: bucket not found")


T = TypeVar("T")


def _with_retry(fn: Callable[[], T], *, attempts: int = 3, sleep_s: float = 0.3) -> T:
    last_exc: Exception | None = None
    for i in range(attempts):
        try:
            return fn()
        except Exception as e:
            last_exc = e
            if i == attempts - 1:
                raise
            time.sleep(sleep_s * (2**i))
    raise last_exc or RuntimeError("minio error")
