from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts
