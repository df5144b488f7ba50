"""Ordered blob-area fallback.

Writes and reads walk the same list of targets, primary first. Each target is
tried exactly once; the outcome is a value, not an exception, so callers can
log and audit every attempt.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spacetwo.core.config import Settings
    from spacetwo.storage.blob_store import BlobStore

log = logging.getLogger("spacetwo")


@dataclass(frozen=True)
class StorageTarget:
    bucket: str
    prefix: str = ""

    def key_for(self, base_key: str) -> str:
        if not self.prefix:
            return base_key
        return f"{self.prefix.strip('/')}/{base_key}"


@dataclass(frozen=True)
class TargetError:
    bucket: str
    key: str
    reason: str


@dataclass(frozen=True)
class NegotiationOk:
    target: StorageTarget
    key: str
    url: str
    failed: list[TargetError] = field(default_factory=list)


@dataclass(frozen=True)
class AllTargetsFailed:
    errors: list[TargetError]


NegotiationOutcome = NegotiationOk | AllTargetsFailed


def storage_targets(settings: Settings) -> list[StorageTarget]:
    return [
        StorageTarget(bucket=settings.PRIMARY_BUCKET),
        StorageTarget(bucket=settings.FALLBACK_BUCKET, prefix=settings.FALLBACK_PREFIX),
    ]


def negotiate_upload(
    store: BlobStore, targets: list[StorageTarget], base_key: str, *, ttl_seconds: int
) -> NegotiationOutcome:
    errors: list[TargetError] = []
    for t in targets:
        key = t.key_for(base_key)
        try:
            url = store.create_signed_upload_url(t.bucket, key, ttl_seconds)
        except Exception as e:
            log.warning("Upload URL: bucket %s rejected %s: %s", t.bucket, key, str(e))
            errors.append(TargetError(bucket=t.bucket, key=key, reason=str(e)))
            continue
        return NegotiationOk(target=t, key=key, url=url, failed=errors)
    return AllTargetsFailed(errors=errors)


def target_for_bucket(targets: list[StorageTarget], bucket: str) -> StorageTarget | None:
    for t in targets:
        if t.bucket == bucket:
            return t
    return None


def resolve_read_url(
    store: BlobStore,
    targets: list[StorageTarget],
    key: str,
    *,
    ttl_seconds: int,
    placeholder: str,
) -> str:
    """Signed read URL from the first target holding ``key``, else ``placeholder``."""

    for t in targets:
        try:
            if not store.exists(t.bucket, key):
                continue
            return store.create_signed_url(t.bucket, key, ttl_seconds)
        except Exception as e:
            log.warning("Read URL: bucket %s failed for %s: %s", t.bucket, key, str(e))
    return placeholder
