from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from spacetwo.core.errors import MetadataWriteFailed, NotFound, ValidationFailed
from spacetwo.library.audit import audit
from spacetwo.library.keys import storage_key
from spacetwo.library.media import DEFAULT_ORIENTATION, classify, file_extension, normalize_mime
from spacetwo.library.resolver import find_collection, resolve_project
from spacetwo.models.tables import Collection, File
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget
from spacetwo.util.ids import is_uuid
from spacetwo.util.time import now_utc

log = logging.getLogger("spacetwo")


def record_file(
    db: Session,
    *,
    owner_id: str,
    file_id: str,
    storage_path: str,
    bucket: str,
    collection: Collection | None,
    collection_name: str,
    file_name: str,
    size: int | None,
    mime_type: str,
) -> File:
    """Insert exactly one File row for a completed upload.

    ``mime_type`` must already be normalized; it is written as-is so the record
    matches the content type the upload URL was negotiated with.
    """

    now = now_utc()
    f = File(
        id=file_id,
        owner_id=owner_id,
        collection_id=collection.id if collection else None,
        title=file_name,
        description=f"Uploaded to {collection_name}",
        file_name=file_name,
        file_path=storage_path,
        storage_bucket=bucket,
        file_size=size or 0,
        mime_type=mime_type,
        type=classify(mime_type),
        orientation=DEFAULT_ORIENTATION,
        # No thumbnail is rendered at write time; both point at the original.
        preview_url=storage_path,
        thumbnail_url=storage_path,
        deleted=False,
        created_at=now,
        updated_at=now,
    )
    db.add(f)
    if collection is not None:
        collection.updated_at = now

    audit(
        db,
        user_id=owner_id,
        event_type="upload.record",
        severity="INFO" if collection else "WARN",
        message="File recorded" if collection else "File recorded without collection",
        context={"file_id": file_id, "path": storage_path, "collection_id": f.collection_id},
    )

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # The bytes are already in the blob store; the sweep reclaims them.
        log.error("Metadata: insert rejected for %s: %s", storage_path, str(e.orig))
        raise MetadataWriteFailed("Failed to create file record", details=str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("Metadata: insert failed for %s", storage_path)
        raise MetadataWriteFailed("Failed to create file record", details=str(e)) from e

    db.refresh(f)
    return f


def _match_target(
    targets: list[StorageTarget], *, project_id: str, collection_name: str, file_id: str, file_name: str, path: str
) -> StorageTarget | None:
    base_key = storage_key(project_id, collection_name, file_id, file_extension(file_name))
    for t in targets:
        if t.key_for(base_key) == path:
            return t
    return None


def complete_upload(
    db: Session,
    store: BlobStore,
    targets: list[StorageTarget],
    *,
    owner_id: str,
    project_name: str,
    collection_name: str,
    file_id: str,
    path: str,
    file_name: str,
    mime_type: str | None,
    size: int | None,
    allow_unlinked: bool,
    verify_blob: bool,
) -> File:
    if not is_uuid(file_id):
        raise ValidationFailed("Invalid file ID format", details={"fileId": file_id})

    project = resolve_project(db, owner_id=owner_id, project_name=project_name)

    target = _match_target(
        targets,
        project_id=project.id,
        collection_name=collection_name,
        file_id=file_id,
        file_name=file_name,
        path=path,
    )
    if target is None:
        raise ValidationFailed("Upload path does not match project/collection", details={"path": path})

    if verify_blob and not store.exists(target.bucket, path):
        raise ValidationFailed("Uploaded object not found in storage", details={"path": path})

    collection = find_collection(db, project_id=project.id, title=collection_name)
    if collection is None:
        if not allow_unlinked:
            raise NotFound("Collection not found", details={"collection_name": collection_name})
        log.warning("Metadata: collection %r missing in project %s; recording unlinked file", collection_name, project.id)

    f = record_file(
        db,
        owner_id=owner_id,
        file_id=file_id,
        storage_path=path,
        bucket=target.bucket,
        collection=collection,
        collection_name=collection_name,
        file_name=file_name,
        size=size,
        mime_type=normalize_mime(mime_type),
    )

    if f.type == "video":
        from spacetwo.tasks.library_tasks import dispatch_thumbnail

        dispatch_thumbnail(f.id)

    return f
