"""Expense settlement: pay an expense and debit its payment source."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import AttachmentRequiredError, InvalidStatusTransitionError, NotFoundError
from app.models.expense import Expense, ExpenseStatus
from app.models.expense_payment import ExpensePayment
from app.models.payment_source_transaction import PaymentSourceTransaction, SourceReferenceType
from app.models.shared import utc_now
from app.repositories.expense_payment_repository import ExpensePaymentRepository
from app.repositories.expense_repository import ExpenseRepository
from app.services.audit_service import AuditService
from app.services.expense_schedule import advance_due_date
from app.services.ledger_math import require_positive
from app.services.ledger_ops import run_ledger_operation
from app.services.notification_service import NotificationService
from app.services.payment_source_ledger import PaymentSourceLedgerService

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = frozenset({ExpenseStatus.PENDING.value, ExpenseStatus.OVERDUE.value})


@dataclass
class SettlementResult:
    expense: Expense
    payment: ExpensePayment
    transaction: PaymentSourceTransaction | None


class ExpenseSettlementService:
    """Service for paying expenses."""

    def __init__(self, db: Session):
        self.db = db
        self.expense_repo = ExpenseRepository(db)
        self.payment_repo = ExpensePaymentRepository(db)
        self.source_ledger = PaymentSourceLedgerService(db)
        self.audit = AuditService(db)

    def get_payments(self, expense_id: UUID) -> list[ExpensePayment]:
        if not self.expense_repo.get_by_id(expense_id):
            raise NotFoundError("expense", expense_id)
        return self.payment_repo.get_by_expense_id(expense_id)

    def settle_expense(
        self,
        expense_id: UUID,
        payment_method: str,
        attachment_url: str | None,
        amount: Decimal | None = None,
        payment_reference: str | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> SettlementResult:
        """Mark an expense paid.

        Records an ``ExpensePayment`` and, when the expense is funded from a
        payment source, debits that source in the same transaction. A
        recurring expense goes back to ``pending`` with ``next_due_date``
        moved forward by one period.

        Raises:
            AttachmentRequiredError: no proof of payment was supplied.
            NotFoundError: the expense or its payment source does not exist.
            InvalidStatusTransitionError: the expense is already paid or cancelled.
            InvalidAmountError: ``amount`` is not positive.
        """
        if not attachment_url or not attachment_url.strip():
            raise AttachmentRequiredError()

        def _settle() -> tuple[UUID, UUID | None]:
            expense = self.expense_repo.get_for_update(expense_id)
            if not expense:
                raise NotFoundError("expense", expense_id)
            if expense.status not in PAYABLE_STATUSES:
                raise InvalidStatusTransitionError(
                    "expense", str(expense.status), ExpenseStatus.PAID.value
                )

            paid_amount = require_positive(amount if amount is not None else expense.amount)
            paid_at = utc_now()
            payment = self.payment_repo.create(
                expense_id=expense_id,
                amount=paid_amount,
                payment_date=paid_at,
                payment_method=payment_method,
                payment_reference=payment_reference,
                attachment_url=attachment_url,
                notes=notes,
                created_by=actor_id,
            )

            txn = None
            if expense.payment_source_id is not None:
                txn = self.source_ledger.debit(
                    expense.payment_source_id,  # type: ignore[arg-type]
                    paid_amount,
                    reference_id=expense_id,
                    reference_type=SourceReferenceType.EXPENSE,
                    description=f"Expense payment: {expense.title}",
                    actor_id=actor_id,
                )
                payment.payment_source_transaction_id = txn.id

            old_status = expense.status
            expense.status = ExpenseStatus.PAID.value  # type: ignore[assignment]
            expense.paid_date = paid_at  # type: ignore[assignment]
            expense.payment_method = payment_method  # type: ignore[assignment]
            expense.payment_reference = payment_reference  # type: ignore[assignment]

            if expense.is_recurring and expense.frequency:
                base = expense.next_due_date or expense.due_date or paid_at
                expense.next_due_date = advance_due_date(base, str(expense.frequency))  # type: ignore[assignment]
                expense.status = ExpenseStatus.PENDING.value  # type: ignore[assignment]
            self.db.flush()

            self.audit.log_update(
                "expense",
                expense_id,
                old_data={"status": old_status},
                new_data={"status": expense.status, "paid_amount": paid_amount},
                actor_id=actor_id,
                action="paid",
            )
            logger.info(
                "Expense %s paid %s from source %s, status %s",
                expense_id,
                paid_amount,
                expense.payment_source_id,
                expense.status,
            )
            return payment.id, (txn.id if txn else None)  # type: ignore[return-value]

        payment_id, txn_id = run_ledger_operation(
            self.db, _settle, entity_type="expense", entity_id=expense_id
        )

        expense = self.expense_repo.get_by_id(expense_id)
        payment = self.db.get(ExpensePayment, payment_id)
        txn = self.db.get(PaymentSourceTransaction, txn_id) if txn_id else None
        NotificationService(self.db).notify_expense_paid(
            expense_id=expense_id,
            title=str(expense.title),  # type: ignore[union-attr]
            amount=payment.amount,  # type: ignore[union-attr]
        )
        return SettlementResult(expense=expense, payment=payment, transaction=txn)  # type: ignore[arg-type]
