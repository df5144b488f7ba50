"""Error taxonomy shared by the library stages and the HTTP layer.

Every stage fails fast with one of these; the API renders them as
``{"error": <message>, "code": <code>}`` with the matching status.
"""
from __future__ import annotations

from typing import Any


class LibraryError(Exception):
    status_code: int = 500
    code: str = "UNKNOWN"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotAuthenticated(LibraryError):
    status_code = 401
    code = "NOT_AUTHENTICATED"


class NotFound(LibraryError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationFailed(LibraryError):
    status_code = 400
    code = "VALIDATION_FAILED"


class Conflict(LibraryError):
    status_code = 409
    code = "CONFLICT"


class StorageUnavailable(LibraryError):
    status_code = 500
    code = "STORAGE_UNAVAILABLE"


class MetadataWriteFailed(LibraryError):
    status_code = 500
    code = "METADATA_WRITE_FAILED"
