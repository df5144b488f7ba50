from __future__ import annotations

from sqlalchemy.orm import Session

from spacetwo.models.tables import AuditLog
from spacetwo.util.ids import new_uuid
from spacetwo.util.time import now_utc


def audit(
    db: Session,
    *,
    user_id: str | None,
    event_type: str,
    severity: str,
    message: str,
    context: dict,
) -> None:
    db.add(
        AuditLog(
            id=new_uuid(),
            user_id=user_id,
            event_type=event_type,
            severity=severity,
            message=message,
            context=context or {},
            created_at=now_utc(),
        )
    )
