from __future__ import annotations

import logging
from datetime import timedelta

from spacetwo.core.celery_app import celery
from spacetwo.core.config import settings
from spacetwo.core.db import SessionLocal
from spacetwo.library.sweeper import sweep_orphans
from spacetwo.models.base import active
from spacetwo.models.tables import File
from spacetwo.storage.blob_store import MinioBlobStore
from spacetwo.storage.targets import storage_targets
from spacetwo.util.time import now_utc

log = logging.getLogger("library_tasks")


@celery.task(name="spacetwo.tasks.library_tasks.generate_thumbnail")
def generate_thumbnail(file_id: str) -> dict:
    """Video thumbnail generation.

    STUB: reports success without rendering an asset; thumbnail_url keeps
    pointing at the original upload.
    """

    with SessionLocal() as db:
        f: File | None = db.query(File).filter(File.id == file_id, active(File)).one_or_none()
        if not f:
            return {"ok": False, "reason": "not_found"}
        if f.type != "video":
            return {"ok": True, "generated": False, "reason": "not_video"}
        return {"ok": True, "generated": False, "thumbnail_url": f.thumbnail_url}


def dispatch_thumbnail(file_id: str) -> None:
    """Fire-and-forget; a failure here never fails the upload."""

    try:
        if settings.CELERY_TASK_ALWAYS_EAGER:
            generate_thumbnail(file_id)
        else:
            generate_thumbnail.delay(file_id)
    except Exception as e:
        log.warning("Thumbnail dispatch failed for %s: %s", file_id, str(e))


@celery.task(name="spacetwo.tasks.library_tasks.sweep_orphaned_blobs")
def sweep_orphaned_blobs(*, grace_hours: int | None = None, dry_run: bool = False) -> dict:
    hours = settings.ORPHAN_GRACE_HOURS if grace_hours is None else grace_hours
    store = MinioBlobStore.from_settings(settings)
    with SessionLocal() as db:
        return sweep_orphans(
            db,
            store,
            storage_targets(settings),
            older_than=now_utc() - timedelta(hours=hours),
            dry_run=dry_run,
        )
