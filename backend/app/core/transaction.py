"""Atomic units of work for ledger mutations.

Every ledger mutation (read current balance, append history row, write the
running balance) runs inside ``run_in_transaction``: one commit on success,
one rollback on any failure. Transient store failures (lock contention, a
stale ``version`` compare-and-swap, a clashing ledger sequence number) are
retried a bounded number of times with exponential backoff. Ledger failures
(``LedgerError``) are never retried.
"""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, StaleDataError, IntegrityError)


@contextmanager
def ledger_transaction(db: Session) -> Iterator[Session]:
    """Commit the session on success, roll it back on any exception."""
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def run_in_transaction(
    db: Session,
    operation: Callable[[], T],
    *,
    entity_type: str,
    entity_id: UUID | str,
    max_attempts: int | None = None,
    backoff_seconds: float | None = None,
) -> T:
    """Run ``operation`` as one atomic unit, retrying transient store failures.

    The retry scope is the single entity being mutated; callers must not wrap
    more than one ledger's writes in a single call.
    """
    attempts = max_attempts if max_attempts is not None else settings.LEDGER_MAX_RETRIES
    backoff = (
        backoff_seconds if backoff_seconds is not None else settings.LEDGER_RETRY_BACKOFF_SECONDS
    )
    attempts = max(attempts, 1)

    for attempt in range(1, attempts + 1):
        try:
            with ledger_transaction(db):
                return operation()
        except TRANSIENT_ERRORS as exc:
            if attempt == attempts:
                logger.error(
                    "Giving up on %s %s after %d attempts: %s",
                    entity_type,
                    entity_id,
                    attempt,
                    exc,
                )
                raise TransientStoreError(entity_type, entity_id, attempt) from exc
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                "Transient failure on %s %s (attempt %d/%d), retrying in %.3fs: %s",
                entity_type,
                entity_id,
                attempt,
                attempts,
                delay,
                exc,
            )
            time.sleep(delay)

    raise TransientStoreError(entity_type, entity_id, attempts)  # pragma: no cover
