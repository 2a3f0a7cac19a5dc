"""Payment source ledger.

Mirrors the client credit ledger for cash and bank accounts: every change to
``PaymentSource.current_balance`` is written together with an appended
``PaymentSourceTransaction`` whose ``balance_before`` / ``balance_after``
chain back to zero.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import InvalidAmountError, LedgerInconsistencyError, NotFoundError
from app.models.expense import Expense
from app.models.payment_source import AccountType, PaymentSource
from app.models.payment_source_transaction import (
    PaymentSourceTransaction,
    SourceReferenceType,
    SourceTransactionType,
)
from app.models.shared import utc_now
from app.repositories.expense_repository import ExpenseRepository
from app.repositories.payment_source_repository import PaymentSourceRepository
from app.repositories.payment_source_transaction_repository import (
    PaymentSourceTransactionRepository,
)
from app.schemas.payment_source import PaymentSourceCreate, StatsPeriod
from app.services.audit_service import AuditService
from app.services.ledger_math import ZERO, require_positive, to_money
from app.services.ledger_ops import run_ledger_operation

logger = logging.getLogger(__name__)

INITIAL_BALANCE_DESCRIPTION = "Initial balance setup"


@dataclass
class SourceExpenseTotals:
    payment_source_id: UUID
    total_spent: Decimal
    expense_count: int


@dataclass
class SourceStats:
    total_sources: int
    active_sources: int
    total_balance: Decimal
    expenses_by_source: list[SourceExpenseTotals]
    period: StatsPeriod
    start_date: datetime
    end_date: datetime


def period_start(period: StatsPeriod, now: datetime) -> datetime:
    """Start of the reporting period ending at ``now``.

    ``week`` is the trailing seven days; the others start at the first day of
    the current month, quarter or year.
    """
    if period == StatsPeriod.WEEK:
        return now - timedelta(days=7)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == StatsPeriod.QUARTER:
        return midnight.replace(month=(now.month - 1) // 3 * 3 + 1, day=1)
    if period == StatsPeriod.YEAR:
        return midnight.replace(month=1, day=1)
    return midnight.replace(day=1)


class PaymentSourceLedgerService:
    """Service owning payment source balances."""

    def __init__(self, db: Session):
        self.db = db
        self.source_repo = PaymentSourceRepository(db)
        self.txn_repo = PaymentSourceTransactionRepository(db)
        self.expense_repo = ExpenseRepository(db)
        self.audit = AuditService(db)

    def create_source(
        self, data: PaymentSourceCreate, actor_id: str | None = None
    ) -> PaymentSource:
        """Create a payment source.

        A non-zero initial balance is booked as an ``adjustment`` from zero so
        the transaction history always sums to the current balance.
        """
        initial_balance = to_money(data.initial_balance)

        def _create() -> PaymentSource:
            source = self.source_repo.create(data, initial_balance)
            self.audit.log_create(
                "payment_source",
                source.id,  # type: ignore[arg-type]
                data={"name": source.name, "initial_balance": initial_balance},
                actor_id=actor_id,
            )
            if initial_balance != ZERO:
                self._append(
                    source,
                    1,
                    SourceTransactionType.ADJUSTMENT,
                    initial_balance,
                    ZERO,
                    description=INITIAL_BALANCE_DESCRIPTION,
                    reference_id=source.id,  # type: ignore[arg-type]
                    reference_type=SourceReferenceType.INITIAL_BALANCE,
                    actor_id=actor_id,
                )
            return source

        source = run_ledger_operation(
            self.db, _create, entity_type="payment_source", entity_id=data.name
        )
        self.db.refresh(source)
        return source

    def get_source(self, source_id: UUID) -> PaymentSource:
        source = self.source_repo.get_by_id(source_id)
        if not source:
            raise NotFoundError("payment_source", source_id)
        return source

    def get_transactions(
        self, source_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[PaymentSourceTransaction]:
        """Get a source's transactions, newest first."""
        self.get_source(source_id)
        return self.txn_repo.get_by_source_id(source_id, skip=skip, limit=limit)

    def get_expenses(self, source_id: UUID, skip: int = 0, limit: int = 100) -> list[Expense]:
        """Expenses funded from a source, newest expense date first."""
        self.get_source(source_id)
        return self.expense_repo.get_by_payment_source_id(source_id, skip=skip, limit=limit)

    def get_stats(
        self, period: StatsPeriod | str = StatsPeriod.MONTH, now: datetime | None = None
    ) -> SourceStats:
        """Balances across all sources and expense debits per source since the period start."""
        period = StatsPeriod(period)
        end = now or utc_now()
        start = period_start(period, end)
        total, active, balance = self.source_repo.get_totals()
        by_source = [
            SourceExpenseTotals(source_id, to_money(spent), count)
            for source_id, spent, count in self.txn_repo.get_expense_totals(start, end)
        ]
        return SourceStats(
            total_sources=total,
            active_sources=active,
            total_balance=to_money(balance),
            expenses_by_source=by_source,
            period=period,
            start_date=start,
            end_date=end,
        )

    def _lock_source(self, source_id: UUID) -> tuple[PaymentSource, Decimal, int]:
        source = self.source_repo.get_for_update(source_id)
        if not source:
            raise NotFoundError("payment_source", source_id)

        balance = to_money(source.current_balance)
        last = self.txn_repo.get_last(source_id)
        ledger_balance = to_money(last.balance_after) if last else ZERO
        if balance != ledger_balance:
            logger.error(
                "Payment source %s balance %s disagrees with ledger tail %s",
                source_id,
                balance,
                ledger_balance,
            )
            raise LedgerInconsistencyError(
                "payment_source",
                source_id,
                "Payment source balance does not match its transaction history",
                stored_balance=balance,
                ledger_balance=ledger_balance,
            )
        next_sequence = (last.sequence + 1) if last else 1
        return source, balance, next_sequence

    def _append(
        self,
        source: PaymentSource,
        sequence: int,
        txn_type: SourceTransactionType,
        signed_amount: Decimal,
        balance_before: Decimal,
        *,
        description: str | None,
        reference_id: UUID | None,
        reference_type: SourceReferenceType | None,
        actor_id: str | None,
    ) -> PaymentSourceTransaction:
        balance_after = to_money(balance_before + signed_amount)
        txn = self.txn_repo.create(
            source_id=source.id,  # type: ignore[arg-type]
            sequence=sequence,
            txn_type=txn_type,
            amount=signed_amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            reference_id=reference_id,
            reference_type=reference_type,
            created_by=actor_id,
        )
        self.source_repo.set_balance(source, balance_after)
        self.audit.log_update(
            "payment_source",
            source.id,  # type: ignore[arg-type]
            old_data={"current_balance": balance_before},
            new_data={"current_balance": balance_after},
            actor_id=actor_id,
            action=txn_type.value,
        )
        if balance_after < 0 and source.account_type != AccountType.CREDIT_CARD.value:
            logger.warning(
                "Payment source %s (%s) is overdrawn: balance %s",
                source.id,
                source.account_type,
                balance_after,
            )
        logger.info(
            "Payment source %s %s %s: balance %s -> %s",
            source.id,
            txn_type.value,
            signed_amount,
            balance_before,
            balance_after,
        )
        return txn

    def debit(
        self,
        source_id: UUID,
        amount: Decimal,
        *,
        reference_id: UUID | None = None,
        reference_type: SourceReferenceType | None = SourceReferenceType.EXPENSE,
        description: str | None = None,
        actor_id: str | None = None,
    ) -> PaymentSourceTransaction:
        """Take ``amount`` out of a source. Runs inside the caller's transaction."""
        amount = require_positive(amount)
        source, balance, sequence = self._lock_source(source_id)
        return self._append(
            source,
            sequence,
            SourceTransactionType.EXPENSE,
            -amount,
            balance,
            description=description,
            reference_id=reference_id,
            reference_type=reference_type,
            actor_id=actor_id,
        )

    def adjust_balance(
        self,
        source_id: UUID,
        signed_amount: Decimal,
        description: str,
        txn_type: SourceTransactionType = SourceTransactionType.ADJUSTMENT,
        actor_id: str | None = None,
    ) -> tuple[PaymentSource, PaymentSourceTransaction]:
        """Apply a manual correction. Runs inside the caller's transaction."""
        signed_amount = to_money(signed_amount)
        if signed_amount == ZERO:
            raise InvalidAmountError("Adjustment amount must not be zero", signed_amount)
        if txn_type == SourceTransactionType.INCOME and signed_amount < 0:
            raise InvalidAmountError("Income amount must be positive", signed_amount)
        if txn_type == SourceTransactionType.EXPENSE:
            raise InvalidAmountError("Use an expense payment to record an expense", signed_amount)

        source, balance, sequence = self._lock_source(source_id)
        txn = self._append(
            source,
            sequence,
            txn_type,
            signed_amount,
            balance,
            description=description,
            reference_id=None,
            reference_type=SourceReferenceType.MANUAL_ADJUSTMENT,
            actor_id=actor_id,
        )
        return source, txn

    def adjust_payment_source_balance(
        self,
        source_id: UUID,
        amount: Decimal,
        description: str,
        txn_type: SourceTransactionType | str = SourceTransactionType.ADJUSTMENT,
        actor_id: str | None = None,
    ) -> tuple[PaymentSource, PaymentSourceTransaction]:
        """Adjust a source's balance in its own transaction."""
        txn_type = SourceTransactionType(txn_type)
        source, txn = run_ledger_operation(
            self.db,
            lambda: self.adjust_balance(source_id, amount, description, txn_type, actor_id),
            entity_type="payment_source",
            entity_id=source_id,
        )
        self.db.refresh(source)
        return source, txn
