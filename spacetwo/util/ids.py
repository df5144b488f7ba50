from __future__ import annotations

import uuid


def new_uuid() -> str:
    return str(uuid.uuid4())


def is_uuid(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
