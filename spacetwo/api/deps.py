from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from spacetwo.core.config import settings
from spacetwo.core.db import SessionLocal
from spacetwo.core.errors import NotAuthenticated
from spacetwo.core.security import hash_api_key
from spacetwo.models.tables import User
from spacetwo.storage.blob_store import BlobStore, MinioBlobStore
from spacetwo.storage.targets import StorageTarget, storage_targets


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache(maxsize=1)
def minio_store() -> MinioBlobStore:
    return MinioBlobStore.from_settings(settings)


def get_blob_store() -> BlobStore:
    return minio_store()


def get_targets() -> list[StorageTarget]:
    return storage_targets(settings)


_bearer = HTTPBearer(auto_error=False)


def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_db),
) -> str:
    """Resolve the bearer credential to the caller's user id."""

    token = (credentials.credentials if credentials else "").strip()
    if not token:
        raise NotAuthenticated("Authentication token required")
    user = db.query(User).filter(User.api_key_hash == hash_api_key(token)).one_or_none()
    if not user:
        raise NotAuthenticated("Invalid or expired token")
    return user.id
