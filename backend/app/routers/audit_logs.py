"""Audit log API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.repositories.audit_log_repository import AuditLogRepository
from app.schemas.audit_log import AuditLogResponse

router = APIRouter()


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=list[AuditLogResponse],
    summary="Get audit trail for an entity",
)
async def get_entity_audit_trail(
    entity_type: str,
    entity_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[AuditLogResponse]:
    """Audit trail for one invoice, client, payment source or expense, newest first."""
    repo = AuditLogRepository(db)
    logs = repo.get_by_entity(entity_type, entity_id, skip=skip, limit=limit)
    return [AuditLogResponse.model_validate(log) for log in logs]
