"""Pydantic schemas for AuditLog."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: UUID
    entity_type: str
    entity_id: UUID
    action: str
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    actor_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
