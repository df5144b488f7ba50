from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from spacetwo.core.errors import StorageUnavailable
from spacetwo.library.audit import audit
from spacetwo.library.keys import storage_key
from spacetwo.library.media import file_extension, normalize_mime
from spacetwo.library.resolver import resolve_project
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import AllTargetsFailed, StorageTarget, negotiate_upload
from spacetwo.util.ids import new_uuid

log = logging.getLogger("spacetwo")


@dataclass(frozen=True)
class UploadDescriptor:
    """Signed upload descriptor. Ephemeral: never persisted, not reissued once expired."""

    upload_url: str
    file_id: str
    storage_path: str
    bucket: str
    mime_type: str
    project_id: str


def negotiate(
    db: Session,
    store: BlobStore,
    targets: list[StorageTarget],
    *,
    owner_id: str,
    project_name: str,
    collection_name: str,
    file_name: str,
    mime_type: str | None,
    ttl_seconds: int,
) -> UploadDescriptor:
    project = resolve_project(db, owner_id=owner_id, project_name=project_name)

    file_id = new_uuid()
    mime = normalize_mime(mime_type)
    base_key = storage_key(project.id, collection_name, file_id, file_extension(file_name))

    outcome = negotiate_upload(store, targets, base_key, ttl_seconds=ttl_seconds)
    if isinstance(outcome, AllTargetsFailed):
        log.error("Upload URL: all blob areas failed for %s: %s", base_key, [e.reason for e in outcome.errors])
        audit(
            db,
            user_id=owner_id,
            event_type="upload.negotiate",
            severity="ERROR",
            message="All blob areas rejected the upload",
            context={"project_id": project.id, "key": base_key, "errors": [e.__dict__ for e in outcome.errors]},
        )
        db.commit()
        raise StorageUnavailable(
            "Failed to generate upload URL",
            details="Storage buckets not properly configured",
        )

    if outcome.failed:
        log.info("Upload URL: using fallback bucket %s for %s", outcome.target.bucket, outcome.key)

    audit(
        db,
        user_id=owner_id,
        event_type="upload.negotiate",
        severity="WARN" if outcome.failed else "INFO",
        message="Upload URL issued",
        context={"project_id": project.id, "file_id": file_id, "bucket": outcome.target.bucket, "key": outcome.key},
    )
    db.commit()

    return UploadDescriptor(
        upload_url=outcome.url,
        file_id=file_id,
        storage_path=outcome.key,
        bucket=outcome.target.bucket,
        mime_type=mime,
        project_id=project.id,
    )
