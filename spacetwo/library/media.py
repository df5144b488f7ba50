from __future__ import annotations

# Device-native containers the blob store's content-type validation rejects.
_MIME_REMAP = {
    "video/quicktime": "video/mp4",
    "video/x-msvideo": "video/mp4",
}

FILE_TYPES = ("image", "video", "animation", "design")

DEFAULT_ORIENTATION = "landscape"


def normalize_mime(mime: str | None) -> str:
    """Canonical content type used for both negotiation and the file record."""

    if not mime:
        return "application/octet-stream"
    base = mime.split(";", 1)[0].strip().lower()
    if not base:
        return "application/octet-stream"
    return _MIME_REMAP.get(base, base)


def classify(mime: str | None) -> str:
    m = (mime or "").lower()
    if m.startswith("video/"):
        return "video"
    if m.startswith("image/"):
        return "image"
    if "gif" in m or "webp" in m:
        return "animation"
    return "design"


def file_extension(file_name: str) -> str:
    name = file_name.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1]
