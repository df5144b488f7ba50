from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spacetwo.api.deps import get_blob_store, get_db, get_identity, get_targets
from spacetwo.core.config import settings
from spacetwo.library.refresher import collection_view
from spacetwo.library.resolver import resolve_by_slug
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget

router = APIRouter()


@router.get("/{project_slug}/{collection_slug}")
def browse_collection(
    project_slug: str,
    collection_slug: str,
    owner_id: str = Depends(get_identity),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    targets: list[StorageTarget] = Depends(get_targets),
) -> dict:
    """Collection view addressed by URL slugs, e.g. ``/browse/nike-space/new-nike-graphic``."""

    r = resolve_by_slug(db, owner_id=owner_id, project_slug=project_slug, collection_slug=collection_slug)
    view = collection_view(
        db,
        store,
        targets,
        r.collection,
        ttl_seconds=settings.READ_URL_TTL_SECONDS,
        placeholder=settings.PLACEHOLDER_IMAGE,
    )
    view["project"] = {"id": r.project.id, "name": r.project.name}
    return view
