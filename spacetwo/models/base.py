from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from spacetwo.util.time import now_utc


class Base(DeclarativeBase):
    pass


class SoftDeleteMixin:
    """Rows are never removed; deletion flips ``deleted`` (Active -> Deleted)."""

    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def is_active(self) -> bool:
        return not self.deleted


def active(model: Any) -> ColumnElement[bool]:
    """Predicate shared by every query path that must hide soft-deleted rows."""
    return model.deleted.is_(False)


def soft_delete(row: SoftDeleteMixin) -> None:
    row.deleted = True
    if hasattr(row, "updated_at"):
        row.updated_at = now_utc()
