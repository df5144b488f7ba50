from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spacetwo.api.deps import get_blob_store, get_db, get_targets
from spacetwo.core.config import settings
from spacetwo.core.errors import ValidationFailed
from spacetwo.core.security import hash_api_key, new_api_key, require_admin_token
from spacetwo.library.sweeper import sweep_orphans
from spacetwo.models.tables import User
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget
from spacetwo.util.ids import new_uuid
from spacetwo.util.time import now_utc

router = APIRouter()


@router.post("/users", dependencies=[Depends(require_admin_token)], status_code=201)
def create_user(payload: dict, db: Session = Depends(get_db)) -> dict:
    """Create-or-get a user by username and mint a new API key.

    The key is returned once; only its hash is stored.
    """

    username = ((payload or {}).get("username") or "").strip()
    if not username:
        raise ValidationFailed("Missing username")

    token = new_api_key()
    user: User | None = db.query(User).filter(User.username == username).one_or_none()
    if user:
        user.api_key_hash = hash_api_key(token)
        db.commit()
        return {"id": user.id, "username": user.username, "api_key": token}

    user = User(
        id=new_uuid(),
        username=username,
        email=(payload or {}).get("email"),
        display_name=(payload or {}).get("display_name"),
        api_key_hash=hash_api_key(token),
        created_at=now_utc(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Another request likely created it concurrently
        existing = db.query(User).filter(User.username == username).one_or_none()
        if not existing:
            raise
        existing.api_key_hash = hash_api_key(token)
        db.commit()
        user = existing

    return {"id": user.id, "username": user.username, "api_key": token}


@router.post("/sweep", dependencies=[Depends(require_admin_token)])
def sweep(
    payload: dict | None = None,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    targets: list[StorageTarget] = Depends(get_targets),
) -> dict:
    try:
        grace_hours = int((payload or {}).get("grace_hours", settings.ORPHAN_GRACE_HOURS))
    except (TypeError, ValueError):
        raise ValidationFailed("grace_hours must be an integer") from None
    if grace_hours < 0:
        raise ValidationFailed("grace_hours must not be negative")
    dry_run = bool((payload or {}).get("dry_run", False))
    return sweep_orphans(
        db,
        store,
        targets,
        older_than=now_utc() - timedelta(hours=grace_hours),
        dry_run=dry_run,
    )
