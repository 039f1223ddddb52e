from __future__ import annotations

from sqlalchemy.orm import Session

from app.models import AuditLog


def log_audit(db: Session, *, action: str, metadata: dict | None = None) -> None:
    db.add(AuditLog(action=action, meta=metadata or {}))
