from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spacetwo.api.deps import get_blob_store, get_db, get_identity, get_targets
from spacetwo.core.config import settings
from spacetwo.core.errors import Conflict, ValidationFailed
from spacetwo.library.audit import audit
from spacetwo.library.refresher import collection_view, list_project_collections
from spacetwo.library.resolver import find_collection, get_collection, get_project
from spacetwo.models.base import soft_delete
from spacetwo.models.tables import Collection
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget
from spacetwo.util.ids import new_uuid
from spacetwo.util.time import now_utc

router = APIRouter()
log = logging.getLogger("spacetwo")


@router.get("")
def get_collections(
    project_id: str | None = None,
    id: str | None = None,
    owner_id: str = Depends(get_identity),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    targets: list[StorageTarget] = Depends(get_targets),
):
    if id:
        c = get_collection(db, owner_id=owner_id, collection_id=id)
        return collection_view(
            db, store, targets, c, ttl_seconds=settings.READ_URL_TTL_SECONDS, placeholder=settings.PLACEHOLDER_IMAGE
        )

    if not project_id:
        raise ValidationFailed("Project ID is required")

    return list_project_collections(
        db,
        store,
        targets,
        owner_id=owner_id,
        project_id=project_id,
        ttl_seconds=settings.READ_URL_TTL_SECONDS,
        placeholder=settings.PLACEHOLDER_IMAGE,
    )


@router.post("", status_code=201)
def create_collection(payload: dict, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    title = ((payload or {}).get("title") or "").strip()
    project_id = (payload or {}).get("project_id")
    if not title:
        raise ValidationFailed("Collection title is required")
    if not project_id:
        raise ValidationFailed("Project ID is required")

    project = get_project(db, owner_id=owner_id, project_id=project_id)

    # Titles are unique per project regardless of case.
    if find_collection(db, project_id=project.id, title=title):
        raise Conflict("A collection with this title already exists in this project")

    now = now_utc()
    c = Collection(
        id=new_uuid(),
        project_id=project.id,
        owner_id=owner_id,
        title=title,
        description=((payload or {}).get("description") or "").strip() or None,
        is_live=bool((payload or {}).get("is_live") or False),
        deleted=False,
        created_at=now,
        updated_at=now,
    )
    db.add(c)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("A collection with this title already exists in this project") from None

    log.info("Collections: created %s in project %s", c.id, project.id)
    return {
        "message": "Collection created successfully",
        "data": {
            "id": c.id,
            "project_id": c.project_id,
            "title": c.title,
            "description": c.description,
            "fileCount": 0,
            "lastUpdated": "Just now",
            "isLive": c.is_live,
            "files": [],
        },
    }


@router.delete("/{collection_id}")
def delete_collection(collection_id: str, owner_id: str = Depends(get_identity), db: Session = Depends(get_db)) -> dict:
    c = get_collection(db, owner_id=owner_id, collection_id=collection_id)
    soft_delete(c)
    audit(
        db,
        user_id=owner_id,
        event_type="collection.delete",
        severity="INFO",
        message="Collection deleted",
        context={"collection_id": c.id, "project_id": c.project_id},
    )
    db.commit()
    return {"message": "Collection deleted successfully"}
