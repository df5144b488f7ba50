from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from spacetwo.core.errors import NotFound
from spacetwo.library.resolver import find_collection, get_project
from spacetwo.models.base import active
from spacetwo.models.tables import Collection, File
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget, resolve_read_url
from spacetwo.util.time import as_utc, now_utc


def humanize_since(ts: datetime, now: datetime | None = None) -> str:
    now = now or now_utc()
    minutes = int((as_utc(now) - as_utc(ts)).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} mins ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


def _display_path(f: File) -> str:
    # Videos only get a distinct preview once a real thumbnail exists.
    if f.type == "video" and f.thumbnail_url and f.thumbnail_url != f.file_path:
        return f.thumbnail_url
    return f.preview_url or f.thumbnail_url or f.file_path


def collection_files(db: Session, *, collection_id: str) -> list[File]:
    return (
        db.query(File)
        .filter(File.collection_id == collection_id, active(File))
        .order_by(File.created_at.asc())
        .all()
    )


def file_view(f: File, *, image: str) -> dict:
    return {
        "id": f.id,
        "title": f.title or f"File {f.id}",
        "image": image,
        "type": f.type,
        "orientation": f.orientation,
        "mime_type": f.mime_type,
    }


def collection_view(
    db: Session,
    store: BlobStore,
    targets: list[StorageTarget],
    collection: Collection,
    *,
    ttl_seconds: int,
    placeholder: str,
) -> dict:
    """View model of a collection; every file gets a freshly signed read URL."""

    files = collection_files(db, collection_id=collection.id)
    views = [
        file_view(
            f,
            image=resolve_read_url(store, targets, _display_path(f), ttl_seconds=ttl_seconds, placeholder=placeholder),
        )
        for f in files
    ]
    return {
        "id": collection.id,
        "project_id": collection.project_id,
        "title": collection.title,
        "description": collection.description,
        "fileCount": len(views),
        "lastUpdated": humanize_since(collection.updated_at),
        "isLive": collection.is_live,
        "files": views,
    }


def refresh(
    db: Session,
    store: BlobStore,
    targets: list[StorageTarget],
    *,
    owner_id: str,
    project_id: str,
    collection_name: str,
    ttl_seconds: int,
    placeholder: str,
) -> dict:
    project = get_project(db, owner_id=owner_id, project_id=project_id)
    # Drop anything cached from the write that preceded this read.
    db.expire_all()
    collection = find_collection(db, project_id=project.id, title=collection_name)
    if collection is None:
        raise NotFound("Collection not found", details={"collection_name": collection_name})
    return collection_view(db, store, targets, collection, ttl_seconds=ttl_seconds, placeholder=placeholder)


def list_project_collections(
    db: Session,
    store: BlobStore,
    targets: list[StorageTarget],
    *,
    owner_id: str,
    project_id: str,
    ttl_seconds: int,
    placeholder: str,
) -> list[dict]:
    project = get_project(db, owner_id=owner_id, project_id=project_id)
    collections = (
        db.query(Collection)
        .filter(Collection.project_id == project.id, active(Collection))
        .order_by(Collection.created_at.desc())
        .all()
    )
    return [
        collection_view(db, store, targets, c, ttl_seconds=ttl_seconds, placeholder=placeholder) for c in collections
    ]
