"""Tests for PaymentSourceLedgerService."""

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import InvalidAmountError, LedgerInconsistencyError, NotFoundError
from app.models.notification import Notification
from app.models.payment_source import AccountType
from app.models.payment_source_transaction import SourceReferenceType, SourceTransactionType
from app.models.shared import utc_now
from app.repositories.expense_repository import ExpenseRepository
from app.schemas.expense import ExpenseCreate
from app.schemas.payment_source import PaymentSourceCreate, StatsPeriod
from app.services.expense_settlement_service import ExpenseSettlementService
from app.services.payment_source_ledger import PaymentSourceLedgerService, period_start
from app.services.reconciliation_service import ReconciliationService


@pytest.fixture
def ledger(db_session):
    return PaymentSourceLedgerService(db_session)


@pytest.fixture
def bank(ledger):
    return ledger.create_source(
        PaymentSourceCreate(name="Main Bank", initial_balance=Decimal("1000.00"))
    )


class TestCreateSource:
    def test_initial_balance_is_booked(self, ledger, bank):
        assert bank.current_balance == Decimal("1000.00")
        assert bank.initial_balance == Decimal("1000.00")
        assert bank.currency == "EGP"

        txns = ledger.get_transactions(bank.id)
        assert len(txns) == 1
        txn = txns[0]
        assert txn.sequence == 1
        assert txn.type == SourceTransactionType.ADJUSTMENT.value
        assert txn.reference_type == SourceReferenceType.INITIAL_BALANCE.value
        assert txn.reference_id == bank.id
        assert txn.balance_before == Decimal("0.00")
        assert txn.balance_after == Decimal("1000.00")
        assert txn.description == "Initial balance setup"

    def test_zero_initial_balance_has_no_history(self, ledger):
        source = ledger.create_source(PaymentSourceCreate(name="Petty Cash", account_type=AccountType.CASH))
        assert source.current_balance == Decimal("0.00")
        assert ledger.get_transactions(source.id) == []

    def test_unknown_source(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_source(uuid4())
        with pytest.raises(NotFoundError):
            ledger.get_transactions(uuid4())


class TestAdjustBalance:
    def test_adjustment(self, ledger, bank):
        source, txn = ledger.adjust_payment_source_balance(bank.id, Decimal("-150.50"), "Bank fee")
        assert source.current_balance == Decimal("849.50")
        assert txn.sequence == 2
        assert txn.amount == Decimal("-150.50")
        assert txn.balance_before == Decimal("1000.00")
        assert txn.balance_after == Decimal("849.50")
        assert txn.reference_type == SourceReferenceType.MANUAL_ADJUSTMENT.value

    def test_income(self, ledger, bank):
        source, txn = ledger.adjust_payment_source_balance(
            bank.id, Decimal("200"), "Interest", txn_type="income"
        )
        assert source.current_balance == Decimal("1200.00")
        assert txn.type == SourceTransactionType.INCOME.value

    def test_negative_income_rejected(self, ledger, bank):
        with pytest.raises(InvalidAmountError):
            ledger.adjust_payment_source_balance(bank.id, Decimal("-5"), "Oops", txn_type="income")

    def test_zero_rejected(self, ledger, bank):
        with pytest.raises(InvalidAmountError):
            ledger.adjust_payment_source_balance(bank.id, Decimal("0"), "Nothing")

    def test_expense_type_rejected(self, ledger, bank):
        with pytest.raises(InvalidAmountError):
            ledger.adjust_payment_source_balance(bank.id, Decimal("-5"), "Lunch", txn_type="expense")

    def test_overdraw_warns(self, ledger, bank, caplog):
        with caplog.at_level(logging.WARNING, logger="app.services.payment_source_ledger"):
            source, _ = ledger.adjust_payment_source_balance(bank.id, Decimal("-1200"), "Transfer out")
        assert source.current_balance == Decimal("-200.00")
        assert "overdrawn" in caplog.text

    def test_credit_card_may_go_negative_quietly(self, ledger, caplog):
        card = ledger.create_source(
            PaymentSourceCreate(name="Corporate Card", account_type=AccountType.CREDIT_CARD)
        )
        with caplog.at_level(logging.WARNING, logger="app.services.payment_source_ledger"):
            source, _ = ledger.adjust_payment_source_balance(card.id, Decimal("-300"), "Charge")
        assert source.current_balance == Decimal("-300.00")
        assert "overdrawn" not in caplog.text

    def test_history_sums_to_balance(self, db_session, ledger, bank):
        ledger.adjust_payment_source_balance(bank.id, Decimal("-10"), "Fee")
        ledger.adjust_payment_source_balance(bank.id, Decimal("75.25"), "Deposit", txn_type="income")
        check = ReconciliationService(db_session).verify_payment_source(bank.id)
        assert check.consistent
        assert check.entries_checked == 3
        assert check.ledger_balance == Decimal("1065.25")

    def test_tampered_balance_halts(self, db_session, ledger, bank):
        bank.current_balance = Decimal("5.00")
        db_session.commit()
        with pytest.raises(LedgerInconsistencyError):
            ledger.adjust_payment_source_balance(bank.id, Decimal("1"), "Anything")
        assert len(ledger.get_transactions(bank.id)) == 1
        assert db_session.query(Notification).filter_by(category="ledger").count() == 1


class TestSourceExpenses:
    @pytest.fixture
    def settle(self, db_session):
        def _settle(source_id, amount: str, title: str = "Office supplies"):
            expense = ExpenseRepository(db_session).create(
                ExpenseCreate(
                    title=title,
                    amount=Decimal(amount),
                    category="office",
                    expense_date=datetime(2026, 10, 1, tzinfo=UTC),
                    payment_method="bank_transfer",
                    attachment_url="https://files.acme-trading.com/receipt.pdf",
                    attachment_type="receipt",
                    payment_source_id=source_id,
                )
            )
            ExpenseSettlementService(db_session).settle_expense(
                expense.id, "bank_transfer", "https://files.acme-trading.com/receipt.pdf"
            )
            return expense

        return _settle

    def test_expenses_funded_from_source(self, ledger, bank, settle):
        rent = settle(bank.id, "120.00", title="Rent")
        other = ledger.create_source(PaymentSourceCreate(name="Petty Cash", initial_balance=Decimal("50")))
        settle(other.id, "10.00", title="Coffee")

        expenses = ledger.get_expenses(bank.id)
        assert [e.id for e in expenses] == [rent.id]

    def test_expenses_of_unknown_source(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_expenses(uuid4())

    def test_stats(self, ledger, bank, settle):
        ledger.create_source(
            PaymentSourceCreate(name="Old Wallet", account_type=AccountType.WALLET, is_active=False)
        )
        settle(bank.id, "120.00")
        settle(bank.id, "30.00")

        stats = ledger.get_stats("month")
        assert stats.total_sources == 2
        assert stats.active_sources == 1
        assert stats.total_balance == Decimal("850.00")
        assert stats.period == StatsPeriod.MONTH
        assert stats.start_date.day == 1
        assert len(stats.expenses_by_source) == 1
        totals = stats.expenses_by_source[0]
        assert totals.payment_source_id == bank.id
        assert totals.total_spent == Decimal("150.00")
        assert totals.expense_count == 2

    def test_stats_ignore_spending_before_the_period(self, ledger, bank, settle):
        settle(bank.id, "120.00")
        stats = ledger.get_stats(StatsPeriod.WEEK, now=utc_now() + timedelta(days=30))
        assert stats.expenses_by_source == []
        assert stats.total_balance == Decimal("880.00")

    def test_stats_without_sources(self, ledger):
        stats = ledger.get_stats()
        assert stats.total_sources == 0
        assert stats.active_sources == 0
        assert stats.total_balance == Decimal("0.00")


class TestPeriodStart:
    @pytest.mark.parametrize(
        "period,expected",
        [
            (StatsPeriod.WEEK, datetime(2026, 8, 12, 15, 30, tzinfo=UTC)),
            (StatsPeriod.MONTH, datetime(2026, 8, 1, tzinfo=UTC)),
            (StatsPeriod.QUARTER, datetime(2026, 7, 1, tzinfo=UTC)),
            (StatsPeriod.YEAR, datetime(2026, 1, 1, tzinfo=UTC)),
        ],
    )
    def test_period_start(self, period, expected):
        assert period_start(period, datetime(2026, 8, 19, 15, 30, tzinfo=UTC)) == expected
