"""PaymentSourceTransaction repository. Rows are appended, never changed."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.payment_source_transaction import (
    PaymentSourceTransaction,
    SourceReferenceType,
    SourceTransactionType,
)


class PaymentSourceTransactionRepository:
    """Repository for PaymentSourceTransaction model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_source_id(
        self, source_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[PaymentSourceTransaction]:
        """Get a source's transactions, newest first."""
        return (
            self.db.query(PaymentSourceTransaction)
            .filter(PaymentSourceTransaction.payment_source_id == source_id)
            .order_by(PaymentSourceTransaction.sequence.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_ledger(self, source_id: UUID) -> list[PaymentSourceTransaction]:
        """Get a source's transactions in append order."""
        return (
            self.db.query(PaymentSourceTransaction)
            .filter(PaymentSourceTransaction.payment_source_id == source_id)
            .order_by(PaymentSourceTransaction.sequence.asc())
            .all()
        )

    def get_last(self, source_id: UUID) -> PaymentSourceTransaction | None:
        return (
            self.db.query(PaymentSourceTransaction)
            .filter(PaymentSourceTransaction.payment_source_id == source_id)
            .order_by(PaymentSourceTransaction.sequence.desc())
            .first()
        )

    def create(
        self,
        *,
        source_id: UUID,
        sequence: int,
        txn_type: SourceTransactionType,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        description: str | None = None,
        reference_id: UUID | None = None,
        reference_type: SourceReferenceType | None = None,
        created_by: str | None = None,
    ) -> PaymentSourceTransaction:
        """Append a transaction. Does not commit."""
        txn = PaymentSourceTransaction(
            payment_source_id=source_id,
            sequence=sequence,
            type=txn_type.value,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            reference_id=reference_id,
            reference_type=reference_type.value if reference_type else None,
            created_by=created_by,
        )
        self.db.add(txn)
        self.db.flush()
        return txn

    def get_expense_totals(
        self, start: datetime, end: datetime
    ) -> list[tuple[UUID, Decimal, int]]:
        """Per source: total debited for expenses and number of debits in ``[start, end]``."""
        rows = (
            self.db.query(
                PaymentSourceTransaction.payment_source_id,
                func.sum(PaymentSourceTransaction.amount),
                func.count(PaymentSourceTransaction.id),
            )
            .filter(
                PaymentSourceTransaction.type == SourceTransactionType.EXPENSE.value,
                PaymentSourceTransaction.created_at >= start,
                PaymentSourceTransaction.created_at <= end,
            )
            .group_by(PaymentSourceTransaction.payment_source_id)
            .all()
        )
        # Expense debits are stored negative
        return [(source_id, -Decimal(str(total)), int(count)) for source_id, total, count in rows]
