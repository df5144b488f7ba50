from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spacetwo.api.deps import get_blob_store, get_db, get_identity, get_targets
from spacetwo.core.config import settings
from spacetwo.core.errors import ValidationFailed
from spacetwo.library.negotiator import negotiate
from spacetwo.library.recorder import complete_upload
from spacetwo.library.refresher import refresh
from spacetwo.models.tables import Collection
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget

router = APIRouter()
log = logging.getLogger("spacetwo")


def _require(payload: dict, *names: str) -> None:
    data = payload or {}
    missing = [n for n in names if not data.get(n)]
    if missing:
        raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")
    # fileType is optional but must be a string when sent.
    invalid = [n for n in (*names, "fileType") if data.get(n) is not None and not isinstance(data[n], str)]
    if invalid:
        raise ValidationFailed(f"Fields must be strings: {', '.join(invalid)}")


def _size(payload: dict) -> int:
    raw = (payload or {}).get("fileSize") or 0
    try:
        size = int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed("fileSize must be an integer") from None
    if size < 0:
        raise ValidationFailed("fileSize must not be negative")
    return size


@router.post("", status_code=201)
def request_upload(
    payload: dict,
    owner_id: str = Depends(get_identity),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    targets: list[StorageTarget] = Depends(get_targets),
) -> dict:
    _require(payload, "fileName", "projectName", "collectionName")
    _size(payload)

    d = negotiate(
        db,
        store,
        targets,
        owner_id=owner_id,
        project_name=payload["projectName"],
        collection_name=payload["collectionName"],
        file_name=payload["fileName"],
        mime_type=payload.get("fileType"),
        ttl_seconds=settings.UPLOAD_URL_TTL_SECONDS,
    )
    log.info("Upload: descriptor issued file_id=%s bucket=%s", d.file_id, d.bucket)
    return {
        "message": "Upload URL created successfully",
        "uploadUrl": d.upload_url,
        "fileId": d.file_id,
        "path": d.storage_path,
        "bucket": d.bucket,
        "mimeType": d.mime_type,
    }


@router.post("/complete", status_code=201)
def finish_upload(
    payload: dict,
    owner_id: str = Depends(get_identity),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    targets: list[StorageTarget] = Depends(get_targets),
) -> dict:
    _require(payload, "fileId", "path", "fileName", "projectName", "collectionName")

    f = complete_upload(
        db,
        store,
        targets,
        owner_id=owner_id,
        project_name=payload["projectName"],
        collection_name=payload["collectionName"],
        file_id=payload["fileId"],
        path=payload["path"],
        file_name=payload["fileName"],
        mime_type=payload.get("fileType"),
        size=_size(payload),
        allow_unlinked=settings.ALLOW_UNLINKED_FILES,
        verify_blob=settings.VERIFY_UPLOAD_ON_COMPLETE,
    )

    view = None
    if f.collection_id:
        c = db.get(Collection, f.collection_id)
        view = refresh(
            db,
            store,
            targets,
            owner_id=owner_id,
            project_id=c.project_id,
            collection_name=c.title,
            ttl_seconds=settings.READ_URL_TTL_SECONDS,
            placeholder=settings.PLACEHOLDER_IMAGE,
        )

    return {
        "message": "File recorded successfully",
        "file": {
            "id": f.id,
            "title": f.title,
            "path": f.file_path,
            "bucket": f.storage_bucket,
            "type": f.type,
            "orientation": f.orientation,
            "mime_type": f.mime_type,
            "file_size": f.file_size,
            "collection_id": f.collection_id,
        },
        "collection": view,
    }
