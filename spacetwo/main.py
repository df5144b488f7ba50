from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis import Redis
from sqlalchemy import text
from starlette.middleware.cors import CORSMiddleware

from spacetwo.api.deps import minio_store
from spacetwo.api.routers.admin import router as admin_router
from spacetwo.api.routers.browse import router as browse_router
from spacetwo.api.routers.collections import router as collections_router
from spacetwo.api.routers.files import router as files_router
from spacetwo.api.routers.projects import router as projects_router
from spacetwo.api.routers.upload import router as upload_router
from spacetwo.core.config import settings
from spacetwo.core.db import engine
from spacetwo.core.errors import LibraryError
from spacetwo.core.logging import configure_logging
from spacetwo.storage.targets import storage_targets

configure_logging(settings.LOG_LEVEL)
log = logging.getLogger("spacetwo")

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)


@app.exception_handler(LibraryError)
def _library_error(request: Request, exc: LibraryError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("%s %s: unexpected error", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "UNKNOWN"})


def _retry_backoff(fn, *, attempts: int = 30, base_sleep_s: float = 1.0, max_sleep_s: float = 2.0, what: str) -> bool:
    sleep_s = base_sleep_s
    for i in range(1, attempts + 1):
        try:
            fn()
            return True
        except Exception as e:
            if i == attempts:
                log.error("Startup: %s still not ready after %s attempts: %s", what, attempts, str(e))
                return False
            log.warning("Startup: %s not ready (attempt %s/%s): %s", what, i, attempts, str(e))
            time.sleep(sleep_s)
            sleep_s = min(max_sleep_s, sleep_s * 2.0)
    return False


def _check_postgres() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def _check_redis() -> bool:
    try:
        r = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        return bool(r.ping())
    except Exception:
        return False


def _check_blob_store() -> bool:
    try:
        store = minio_store()
        return all(store.bucket_exists(t.bucket) for t in storage_targets(settings))
    except Exception:
        return False


@app.on_event("startup")
def _startup() -> None:
    # Do not crash API if deps are temporarily unavailable.
    if not settings.ENSURE_EXTERNAL_DEPS_ON_STARTUP:
        log.info("Startup: ENSURE_EXTERNAL_DEPS_ON_STARTUP=false; skipping bucket ensure")
        return

    store = minio_store()
    for t in storage_targets(settings):
        _retry_backoff(lambda b=t.bucket: store.ensure_bucket(b), what=f"minio:{t.bucket}")


@app.get("/health")
def health() -> dict[str, Any]:
    deps = {
        "postgres": _check_postgres(),
        "redis": _check_redis(),
        "minio": _check_blob_store(),
    }
    return {"ok": all(deps.values()), "deps": deps, "app": settings.APP_NAME}


app.include_router(admin_router, prefix="/admin", tags=["admin"])
app.include_router(upload_router, prefix="/upload", tags=["upload"])
app.include_router(collections_router, prefix="/collections", tags=["collections"])
app.include_router(projects_router, prefix="/projects", tags=["projects"])
app.include_router(files_router, prefix="/files", tags=["files"])
app.include_router(browse_router, prefix="/browse", tags=["browse"])
