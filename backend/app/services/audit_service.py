"""Audit service for recording state changes to ledger entities."""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.repositories.audit_log_repository import AuditLogRepository


def _serialize(values: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Decimal | UUID):
            out[key] = str(value)
        elif hasattr(value, "isoformat"):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out


class AuditService:
    """Service for recording audit trail entries.

    Rows are written inside the caller's transaction so an audit entry exists
    exactly when the change it describes was committed.
    """

    def __init__(self, db: Session):
        self.repo = AuditLogRepository(db)

    def log_create(
        self,
        entity_type: str,
        entity_id: UUID,
        data: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Log an entity creation event."""
        self.repo.create(
            entity_type=entity_type,
            entity_id=entity_id,
            action="created",
            new_values=_serialize(data or {}),
            actor_id=actor_id or settings.SYSTEM_ACTOR_ID,
        )

    def log_update(
        self,
        entity_type: str,
        entity_id: UUID,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
        actor_id: str | None = None,
        action: str = "updated",
    ) -> None:
        """Log an update event, keeping only the fields that changed."""
        old = _serialize(old_data or {})
        new = _serialize(new_data or {})
        changed = {k for k in set(old) | set(new) if old.get(k) != new.get(k)}
        if not changed:
            return
        self.repo.create(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            old_values={k: old.get(k) for k in changed},
            new_values={k: new.get(k) for k in changed},
            actor_id=actor_id or settings.SYSTEM_ACTOR_ID,
        )
