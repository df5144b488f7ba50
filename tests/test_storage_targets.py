from __future__ import annotations

from spacetwo.storage.targets import AllTargetsFailed, NegotiationOk, StorageTarget, negotiate_upload, resolve_read_url
from tests.fakes import FakeBlobStore

TARGETS = [StorageTarget(bucket="project-files"), StorageTarget(bucket="avatars", prefix="uploads")]


def test_primary_target_used_when_available():
    store = FakeBlobStore()
    out = negotiate_upload(store, TARGETS, "p/c/f.png", ttl_seconds=60)
    assert isinstance(out, NegotiationOk)
    assert out.target.bucket == "project-files"
    assert out.key == "p/c/f.png"
    assert out.failed == []
    assert store.upload_calls() == [("upload_url", "project-files", "p/c/f.png")]


def test_fallback_tried_exactly_once_with_prefixed_key():
    store = FakeBlobStore(buckets=("avatars",))
    out = negotiate_upload(store, TARGETS, "p/c/f.png", ttl_seconds=60)
    assert isinstance(out, NegotiationOk)
    assert out.target.bucket == "avatars"
    assert out.key == "uploads/p/c/f.png"
    assert [e.bucket for e in out.failed] == ["project-files"]
    assert store.upload_calls() == [
        ("upload_url", "project-files", "p/c/f.png"),
        ("upload_url", "avatars", "uploads/p/c/f.png"),
    ]


def test_all_targets_failed():
    store = FakeBlobStore(buckets=())
    out = negotiate_upload(store, TARGETS, "p/c/f.png", ttl_seconds=60)
    assert isinstance(out, AllTargetsFailed)
    assert [e.bucket for e in out.errors] == ["project-files", "avatars"]
    assert len(store.upload_calls()) == 2


def test_read_url_falls_back_to_secondary_then_placeholder():
    store = FakeBlobStore()
    store.put("avatars", "uploads/p/c/f.png")

    url = resolve_read_url(store, TARGETS, "uploads/p/c/f.png", ttl_seconds=30, placeholder="/ph.svg")
    assert url.startswith("https://blob.test/avatars/uploads/p/c/f.png")

    assert resolve_read_url(store, TARGETS, "nope.png", ttl_seconds=30, placeholder="/ph.svg") == "/ph.svg"


def test_read_url_survives_rejecting_primary():
    store = FakeBlobStore()
    store.put("project-files", "k.png")
    store.put("avatars", "k.png")
    store.reject_reads.add("project-files")

    url = resolve_read_url(store, TARGETS, "k.png", ttl_seconds=30, placeholder="/ph.svg")
    assert url.startswith("https://blob.test/avatars/k.png")
