from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeBlobStore
from tests.utils_library import create_collection, create_project, make_client, upload

UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


@pytest.fixture()
def store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture()
def client(monkeypatch, store) -> TestClient:
    return make_client(monkeypatch, store)


def _file_rows(**filters):
    from spacetwo.core.db import SessionLocal
    from spacetwo.models.tables import File

    with SessionLocal() as db:
        q = db.query(File)
        for k, v in filters.items():
            q = q.filter(getattr(File, k) == v)
        return q.all()


def test_upload_png_scenario(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Nike Space")
    create_collection(client, project["id"], "New Nike Graphic")

    out = upload(
        client, store, file_name="photo.png", file_type="image/png", project="Nike Space", collection="New Nike Graphic"
    )

    d = out["descriptor"]
    assert d["bucket"] == "project-files"
    assert d["uploadUrl"].startswith("https://blob.test/project-files/")
    assert re.fullmatch(rf"{project['id']}/new_nike_graphic/{UUID_RE}\.png", d["path"])
    assert d["path"].endswith(f"{d['fileId']}.png")

    rows = _file_rows(id=d["fileId"])
    assert len(rows) == 1
    f = rows[0]
    assert f.type == "image"
    assert f.orientation == "landscape"
    assert f.mime_type == "image/png"
    assert f.file_size == 2048
    assert f.file_path == d["path"]
    assert f.preview_url == f.thumbnail_url == d["path"]
    assert f.owner_id == client.user_id  # type: ignore[attr-defined]
    assert f.description == "Uploaded to New Nike Graphic"

    view = out["collection"]
    assert view["fileCount"] == 1
    assert view["files"][0]["id"] == d["fileId"]
    assert view["files"][0]["image"].startswith(f"https://blob.test/project-files/{d['path']}")


def test_upload_to_unknown_project_is_not_found(client: TestClient, store: FakeBlobStore):
    before = len(_file_rows(owner_id=client.user_id))  # type: ignore[attr-defined]
    r = client.post(
        "/upload",
        json={"fileName": "a.png", "fileType": "image/png", "fileSize": 1, "projectName": "Ghost", "collectionName": "X"},
    )
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"
    assert store.upload_calls() == []
    assert len(_file_rows(owner_id=client.user_id)) == before  # type: ignore[attr-defined]


def test_other_users_project_is_not_visible(monkeypatch, store: FakeBlobStore):
    owner = make_client(monkeypatch, store)
    create_project(owner, "Shared Name")

    intruder = make_client(monkeypatch, store)
    r = intruder.post(
        "/upload",
        json={"fileName": "a.png", "fileType": "image/png", "projectName": "Shared Name", "collectionName": "X"},
    )
    assert r.status_code == 404


def test_same_file_name_twice_yields_two_records(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Twins")
    create_collection(client, project["id"], "Shots")

    a = upload(client, store, file_name="same.jpg", file_type="image/jpeg", project="Twins", collection="Shots")
    b = upload(client, store, file_name="same.jpg", file_type="image/jpeg", project="Twins", collection="Shots")

    assert a["descriptor"]["fileId"] != b["descriptor"]["fileId"]
    assert a["descriptor"]["path"] != b["descriptor"]["path"]
    assert b["collection"]["fileCount"] == 2
    assert {f["id"] for f in b["collection"]["files"]} == {a["descriptor"]["fileId"], b["descriptor"]["fileId"]}


def test_refresh_file_count_grows_by_recorded_files(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Counter")
    create_collection(client, project["id"], "Batch")

    def count() -> int:
        views = client.get("/collections", params={"project_id": project["id"]}).json()
        return next(v for v in views if v["title"] == "Batch")["fileCount"]

    assert count() == 0
    for name in ["1.png", "2.gif", "3.mp4"]:
        upload(client, store, file_name=name, file_type="", project="Counter", collection="Batch")
    assert count() == 3


def test_collection_name_matches_case_insensitively(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Casey")
    col = create_collection(client, project["id"], "Mixed Case")

    for name in ["mixed case", "MIXED CASE", "Mixed Case"]:
        out = upload(client, store, file_name="x.png", file_type="image/png", project="Casey", collection=name)
        assert out["file"]["collection_id"] == col["id"]


def test_quicktime_is_normalized_for_both_negotiation_and_record(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Clips")
    create_collection(client, project["id"], "Reels")

    for mime in ["video/quicktime", "video/x-msvideo"]:
        out = upload(client, store, file_name="clip.mov", file_type=mime, project="Clips", collection="Reels")
        assert out["descriptor"]["mimeType"] == "video/mp4"
        assert out["file"]["mime_type"] == "video/mp4"
        assert out["file"]["type"] == "video"
        assert out["descriptor"]["path"].endswith(".mov")


def test_primary_bucket_failure_falls_back_to_secondary(client: TestClient, store: FakeBlobStore):
    store.reject_uploads.add("project-files")
    project = create_project(client, "Fallback")
    create_collection(client, project["id"], "Backup Shots")

    out = upload(client, store, file_name="a.webp", file_type="image/webp", project="Fallback", collection="Backup Shots")

    d = out["descriptor"]
    assert d["bucket"] == "avatars"
    assert d["path"] == f"uploads/{project['id']}/backup_shots/{d['fileId']}.webp"
    assert [c[1] for c in store.upload_calls()] == ["project-files", "avatars"]
    assert out["file"]["bucket"] == "avatars"
    # Read side walks the same order and finds the object in the secondary area.
    assert out["collection"]["files"][0]["image"].startswith("https://blob.test/avatars/uploads/")


def test_both_buckets_failing_is_storage_unavailable(client: TestClient, store: FakeBlobStore):
    store.reject_uploads.update({"project-files", "avatars"})
    project = create_project(client, "Broken")
    create_collection(client, project["id"], "Nowhere")

    r = client.post(
        "/upload",
        json={"fileName": "a.png", "fileType": "image/png", "projectName": "Broken", "collectionName": "Nowhere"},
    )
    assert r.status_code == 500
    assert r.json()["code"] == "STORAGE_UNAVAILABLE"
    assert [c[1] for c in store.upload_calls()] == ["project-files", "avatars"]

    views = client.get("/collections", params={"project_id": project["id"]}).json()
    assert views[0]["fileCount"] == 0


def test_missing_fields_and_bad_size(client: TestClient):
    r = client.post("/upload", json={"fileName": "a.png"})
    assert r.status_code == 400
    assert "projectName" in r.json()["error"]

    r = client.post(
        "/upload",
        json={"fileName": "a.png", "projectName": "p", "collectionName": "c", "fileSize": "big"},
    )
    assert r.status_code == 400


def test_requires_bearer_token(monkeypatch, store: FakeBlobStore):
    c = make_client(monkeypatch, store)
    body = {"fileName": "a.png", "projectName": "p", "collectionName": "c"}

    r = c.post("/upload", json=body, headers={"Authorization": ""})
    assert r.status_code == 401
    assert r.json()["code"] == "NOT_AUTHENTICATED"

    r = c.post("/upload", json=body, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_complete_rejects_foreign_path(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Strict Paths")
    create_collection(client, project["id"], "Col")
    body = {"fileName": "a.png", "fileType": "image/png", "fileSize": 3, "projectName": "Strict Paths", "collectionName": "Col"}
    d = client.post("/upload", json=body).json()
    store.put(d["bucket"], d["path"])

    r = client.post("/upload/complete", json={**body, "fileId": d["fileId"], "path": "other/col/x.png"})
    assert r.status_code == 400
    assert _file_rows(id=d["fileId"]) == []


def test_complete_requires_uploaded_bytes(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "No Bytes")
    create_collection(client, project["id"], "Col")
    body = {"fileName": "a.png", "fileType": "image/png", "fileSize": 3, "projectName": "No Bytes", "collectionName": "Col"}
    d = client.post("/upload", json=body).json()

    r = client.post("/upload/complete", json={**body, "fileId": d["fileId"], "path": d["path"]})
    assert r.status_code == 400
    assert _file_rows(id=d["fileId"]) == []


def test_complete_twice_is_metadata_write_failure(client: TestClient, store: FakeBlobStore):
    project = create_project(client, "Dupes")
    create_collection(client, project["id"], "Col")
    out = upload(client, store, file_name="a.png", file_type="image/png", project="Dupes", collection="Col")
    d = out["descriptor"]

    r = client.post(
        "/upload/complete",
        json={
            "fileId": d["fileId"],
            "path": d["path"],
            "fileName": "a.png",
            "fileType": "image/png",
            "projectName": "Dupes",
            "collectionName": "Col",
        },
    )
    assert r.status_code == 500
    assert r.json()["code"] == "METADATA_WRITE_FAILED"
    assert len(_file_rows(id=d["fileId"])) == 1


def test_missing_collection_records_unlinked_file(client: TestClient, store: FakeBlobStore):
    create_project(client, "Loose")

    out = upload(client, store, file_name="a.svg", file_type="image/svg+xml", project="Loose", collection="Not There")
    assert out["file"]["collection_id"] is None
    assert out["collection"] is None
    assert out["descriptor"]["path"].split("/")[1] == "not_there"


def test_missing_collection_rejected_when_unlinked_files_disallowed(monkeypatch, client: TestClient, store: FakeBlobStore):
    from spacetwo.core.config import settings

    monkeypatch.setattr(settings, "ALLOW_UNLINKED_FILES", False)
    create_project(client, "Strict")
    body = {"fileName": "a.png", "fileType": "image/png", "projectName": "Strict", "collectionName": "Ghost"}
    d = client.post("/upload", json=body).json()
    store.put(d["bucket"], d["path"])

    r = client.post("/upload/complete", json={**body, "fileId": d["fileId"], "path": d["path"]})
    assert r.status_code == 404
    assert _file_rows(id=d["fileId"]) == []


@pytest.mark.parametrize("field", ["fileName", "fileType", "projectName", "collectionName"])
def test_non_string_fields_are_rejected(client: TestClient, store: FakeBlobStore, field: str):
    body = {"fileName": "a.png", "fileType": "image/png", "projectName": "p", "collectionName": "c", field: 123}

    r = client.post("/upload", json=body)
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_FAILED"
    assert field in r.json()["error"]
    assert store.upload_calls() == []

    done = client.post("/upload/complete", json={**body, "fileId": "00000000-0000-0000-0000-000000000000", "path": "x"})
    assert done.status_code == 400


def test_complete_rejects_non_string_path(client: TestClient):
    r = client.post(
        "/upload/complete",
        json={"fileId": "00000000-0000-0000-0000-000000000000", "path": ["a"], "fileName": "a.png", "projectName": "p", "collectionName": "c"},
    )
    assert r.status_code == 400
    assert "path" in r.json()["error"]


def test_non_bearer_scheme_is_not_authenticated(client: TestClient):
    body = {"fileName": "a.png", "projectName": "p", "collectionName": "c"}
    r = client.post("/upload", json=body, headers={"Authorization": "Basic dXNlcjpwdw=="})
    assert r.status_code == 401
    assert r.json()["code"] == "NOT_AUTHENTICATED"
