from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from spacetwo.library.audit import audit
from spacetwo.models.tables import File
from spacetwo.storage.blob_store import BlobStore
from spacetwo.storage.targets import StorageTarget
from spacetwo.util.time import as_utc

log = logging.getLogger("spacetwo")


def sweep_orphans(
    db: Session,
    store: BlobStore,
    targets: list[StorageTarget],
    *,
    older_than: datetime,
    dry_run: bool = False,
) -> dict:
    """Remove blobs that no File row references.

    Only objects last modified before ``older_than`` are touched, so uploads
    whose descriptor is still live (bytes pushed, completion pending) survive.
    Soft-deleted rows still count as references.
    """

    known = {p for (p,) in db.query(File.file_path).all()}
    cutoff = as_utc(older_than)

    scanned = 0
    removed: list[str] = []
    errors: list[dict] = []
    for t in targets:
        prefix = f"{t.prefix.strip('/')}/" if t.prefix else ""
        try:
            objects = store.list_objects(t.bucket, prefix)
        except Exception as e:
            log.warning("Sweep: cannot list %s: %s", t.bucket, str(e))
            errors.append({"bucket": t.bucket, "reason": str(e)})
            continue

        for o in objects:
            scanned += 1
            if o.key in known:
                continue
            if o.last_modified is not None and as_utc(o.last_modified) >= cutoff:
                continue
            if not dry_run:
                try:
                    store.remove(t.bucket, o.key)
                except Exception as e:
                    log.warning("Sweep: cannot remove %s/%s: %s", t.bucket, o.key, str(e))
                    errors.append({"bucket": t.bucket, "key": o.key, "reason": str(e)})
                    continue
            removed.append(f"{t.bucket}/{o.key}")

    log.info("Sweep: scanned=%s removed=%s errors=%s dry_run=%s", scanned, len(removed), len(errors), dry_run)
    audit(
        db,
        user_id=None,
        event_type="storage.sweep",
        severity="WARN" if errors else "INFO",
        message="Orphaned blob sweep",
        context={"scanned": scanned, "removed": removed, "errors": errors, "dry_run": dry_run},
    )
    db.commit()

    return {"ok": not errors, "scanned": scanned, "removed": removed, "errors": errors, "dry_run": dry_run}
