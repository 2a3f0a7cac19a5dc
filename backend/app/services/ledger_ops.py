"""Entry-point wrapper shared by the ledger services."""

import logging
from collections.abc import Callable
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import LedgerInconsistencyError
from app.core.transaction import run_in_transaction
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_ledger_operation(
    db: Session,
    operation: Callable[[], T],
    *,
    entity_type: str,
    entity_id: UUID | str,
) -> T:
    """Run one ledger mutation atomically; alert if the ledger is inconsistent.

    The transaction has already been rolled back when the alert is written.
    """
    try:
        return run_in_transaction(db, operation, entity_type=entity_type, entity_id=entity_id)
    except LedgerInconsistencyError as exc:
        logger.error("Ledger inconsistency on %s %s: %s", exc.entity_type, exc.entity_id, exc)
        NotificationService(db).alert_ledger(
            entity_type=exc.entity_type,
            entity_id=exc.entity_id,
            message=f"{exc.message}: {exc.to_detail()['details']}",
        )
        raise
