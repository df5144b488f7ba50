from __future__ import annotations

ADMIN_TOKEN = "change-me-admin-token"


def set_test_env(monkeypatch) -> None:
    # Minimal env for Settings() to load during import.
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.setenv("ENSURE_EXTERNAL_DEPS_ON_STARTUP", "0")
    monkeypatch.setenv("CELERY_TASK_ALWAYS_EAGER", "1")
    monkeypatch.setenv("CELERY_BROKER_URL", "memory://")
    monkeypatch.setenv("CELERY_RESULT_BACKEND", "cache+memory://")


def make_client(monkeypatch, store, *, username: str | None = None):
    """TestClient bound to ``store`` and authenticated as a fresh user."""

    set_test_env(monkeypatch)

    from fastapi.testclient import TestClient

    import spacetwo.main
    from spacetwo.api.deps import get_blob_store
    from spacetwo.core.config import settings
    from spacetwo.core.db import engine
    from spacetwo.models.base import Base
    from spacetwo.util.ids import new_uuid

    # Settings object may already be imported by other tests; enforce runtime overrides.
    monkeypatch.setattr(settings, "ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.setattr(settings, "CELERY_TASK_ALWAYS_EAGER", True)
    monkeypatch.setattr(settings, "ALLOW_UNLINKED_FILES", True)
    monkeypatch.setattr(settings, "VERIFY_UPLOAD_ON_COMPLETE", True)

    # Create schema (SQLite tests don't run Alembic).
    Base.metadata.create_all(bind=engine)

    app = spacetwo.main.app
    monkeypatch.setitem(app.dependency_overrides, get_blob_store, lambda: store)

    c = TestClient(app)
    r = c.post(
        "/admin/users",
        json={"username": username or f"u-{new_uuid()}"},
        headers={"X-Admin-Token": ADMIN_TOKEN},
    )
    assert r.status_code == 201, r.text
    c.headers.update({"Authorization": f"Bearer {r.json()['api_key']}"})
    c.user_id = r.json()["id"]  # type: ignore[attr-defined]
    return c


def create_project(client, name: str = "Nike Space") -> dict:
    r = client.post("/projects", json={"name": name, "type": "text", "label": "NS", "bg": "#111", "color": "#fff"})
    assert r.status_code == 201, r.text
    return r.json()["data"]


def create_collection(client, project_id: str, title: str = "New Nike Graphic") -> dict:
    r = client.post("/collections", json={"title": title, "project_id": project_id, "is_live": True})
    assert r.status_code == 201, r.text
    return r.json()["data"]


def upload(client, store, *, file_name: str, file_type: str, project: str, collection: str, size: int = 2048) -> dict:
    """Negotiate, push bytes into the fake store, then record."""

    body = {
        "fileName": file_name,
        "fileType": file_type,
        "fileSize": size,
        "projectName": project,
        "collectionName": collection,
    }
    r = client.post("/upload", json=body)
    assert r.status_code == 201, r.text
    d = r.json()
    store.put(d["bucket"], d["path"], b"\x00" * size)

    done = client.post("/upload/complete", json={**body, "fileId": d["fileId"], "path": d["path"]})
    assert done.status_code == 201, done.text
    return {"descriptor": d, **done.json()}
