from __future__ import annotations

import re

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")
_UNDERSCORES = re.compile(r"_+")

_SLUG_SPACES = re.compile(r"\s+")
_SLUG_UNSAFE = re.compile(r"[^\w-]+")
_SLUG_DASHES = re.compile(r"--+")


def sanitize_segment(name: str) -> str:
    """Reduce a user-supplied name to a URL/filesystem-safe path segment."""

    s = _UNSAFE.sub("_", name or "")
    s = _UNDERSCORES.sub("_", s)
    return s.strip("_").lower()


def storage_key(project_id: str, collection_name: str, file_id: str, ext: str) -> str:
    leaf = f"{file_id}.{ext}" if ext else file_id
    return f"{project_id}/{sanitize_segment(collection_name)}/{leaf}"


def to_slug(text: str) -> str:
    s = _SLUG_SPACES.sub("-", (text or "").lower())
    s = _SLUG_UNSAFE.sub("", s)
    s = _SLUG_DASHES.sub("-", s)
    return s.strip("-")


def from_slug(slug: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in (slug or "").split("-") if w)


def match_slug(slug: str, candidates: list[str]) -> str | None:
    want = to_slug(slug)
    for c in candidates:
        if to_slug(c) == want:
            return c
    return None
