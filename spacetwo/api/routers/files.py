from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spacetwo.api.deps import get_blob_store, get_db, get_identity, get_targets
from spacetwo.core.config import settings
from spacetwo.core.errors import NotFound, ValidationFailed
from spacetwo.library.audit import audit
from spacetwo.models.base import active, soft_delete
from spacetwo.models.tables import Collection, File, Project
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget, resolve_read_url
from spacetwo.util.ids import is_uuid

router = APIRouter()


def _owned_file(db: Session, *, owner_id: str, file_id: str) -> File:
    if not is_uuid(file_id):
        raise ValidationFailed("Invalid file ID format", details={"fileId": file_id})
    f: File | None = (
        db.query(File).filter(File.id == file_id, File.owner_id == owner_id, active(File)).one_or_none()
    )
    if not f:
        raise NotFound("File not found")
    return f


@router.get("/{file_id}")
def read_file(
    file_id: str,
    owner_id: str = Depends(get_identity),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    targets: list[StorageTarget] = Depends(get_targets),
) -> dict:
    f = _owned_file(db, owner_id=owner_id, file_id=file_id)

    collection_title = None
    project_name = None
    if f.collection_id:
        row = (
            db.query(Collection.title, Project.name)
            .join(Project, Project.id == Collection.project_id)
            .filter(Collection.id == f.collection_id, active(Collection), active(Project))
            .one_or_none()
        )
        if row:
            collection_title, project_name = row

    image = resolve_read_url(
        store,
        targets,
        f.preview_url or f.file_path,
        ttl_seconds=settings.READ_URL_TTL_SECONDS,
        placeholder=settings.PLACEHOLDER_IMAGE,
    )
    return {
        "id": f.id,
        "title": f.title or f"File {f.id}",
        "description": f.description or "No description available",
        "image": image,
        "type": f.type,
        "orientation": f.orientation or "landscape",
        "mime_type": f.mime_type,
        "file_size": f.file_size,
        "collection": collection_title,
        "project": project_name,
        "createdAt": f.created_at,
    }


@router.delete("/{file_id}")
def delete_file(file_id: str, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    f = _owned_file(db, owner_id=owner_id, file_id=file_id)
    soft_delete(f)
    audit(
        db,
        user_id=owner_id,
        event_type="file.delete",
        severity="INFO",
        message="File deleted",
        context={"file_id": f.id, "collection_id": f.collection_id},
    )
    db.commit()
    return {"message": "File deleted successfully"}
