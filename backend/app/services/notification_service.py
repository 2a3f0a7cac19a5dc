"""Service for creating in-app notifications and ledger alerts."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.notification import Notification, NotificationPriority
from app.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)

# Notification categories
CATEGORY_PAYMENT = "payment"
CATEGORY_CREDIT = "credit"
CATEGORY_REFUND = "refund"
CATEGORY_EXPENSE = "expense"
CATEGORY_LEDGER = "ledger"


class NotificationService:
    """Service for creating in-app notifications from ledger events.

    Notifications commit on their own and are written after the ledger
    transaction they describe has been committed or rolled back. Event
    notifications are best effort: the ledger change they describe is
    already durable, so a failed insert is logged and never raised.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository(db)

    def notify(
        self,
        *,
        category: str,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
    ) -> Notification:
        """Create a notification."""
        return self.repo.create(
            category=category,
            title=title,
            message=message,
            priority=priority,
            entity_type=entity_type,
            entity_id=entity_id,
        )

    def _notify_best_effort(self, **kwargs) -> Notification | None:  # type: ignore[no-untyped-def]
        try:
            return self.notify(**kwargs)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Failed to store %s notification for %s %s",
                kwargs.get("category"),
                kwargs.get("entity_type"),
                kwargs.get("entity_id"),
            )
            return None

    def notify_overpayment_credited(
        self, *, client_id: UUID, invoice_number: str, amount: Decimal
    ) -> Notification | None:
        return self._notify_best_effort(
            category=CATEGORY_CREDIT,
            title="Overpayment added to client credit",
            message=f"Overpayment of {amount} on invoice {invoice_number} was added to client credit.",
            entity_type="client",
            entity_id=client_id,
        )

    def notify_invoice_refunded(
        self, *, invoice_id: UUID, invoice_number: str, amount: Decimal
    ) -> Notification | None:
        return self._notify_best_effort(
            category=CATEGORY_REFUND,
            title="Invoice refund processed",
            message=f"Refund of {amount} processed for invoice {invoice_number}.",
            entity_type="invoice",
            entity_id=invoice_id,
        )

    def notify_credit_refunded(self, *, client_id: UUID, amount: Decimal) -> Notification | None:
        return self._notify_best_effort(
            category=CATEGORY_REFUND,
            title="Client credit refunded",
            message=f"Credit refund of {amount} paid out to client.",
            entity_type="client",
            entity_id=client_id,
        )

    def notify_expense_paid(
        self, *, expense_id: UUID, title: str, amount: Decimal
    ) -> Notification | None:
        return self._notify_best_effort(
            category=CATEGORY_EXPENSE,
            title="Expense paid",
            message=f"Expense '{title}' paid: {amount}.",
            priority=NotificationPriority.LOW,
            entity_type="expense",
            entity_id=expense_id,
        )

    def alert_ledger(
        self, *, entity_type: str, entity_id: UUID | None, message: str
    ) -> Notification | None:
        """Raise an urgent ledger alert.

        If the alert cannot be stored the failure is logged and the caller
        goes on to raise the original error.
        """
        return self._notify_best_effort(
            category=CATEGORY_LEDGER,
            title="Ledger alert",
            message=message[:1000],
            priority=NotificationPriority.URGENT,
            entity_type=entity_type,
            entity_id=entity_id,
        )
