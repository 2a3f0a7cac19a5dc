"""Tests for CreditLedgerService and client credit refunds."""

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import InsufficientCreditError, LedgerInconsistencyError, NotFoundError
from app.core.transaction import run_in_transaction
from app.models.client_credit_history import CreditEntryType
from app.models.notification import Notification
from app.repositories.credit_history_repository import CreditHistoryRepository
from app.repositories.notification_repository import NotificationRepository
from app.services.credit_ledger import CreditLedgerService
from app.services.ledger_math import signed_credit_delta


@pytest.fixture
def ledger(db_session):
    return CreditLedgerService(db_session)


@pytest.fixture
def add(db_session, ledger):
    """Add credit in its own transaction, the way callers do."""

    def _add(client_id, amount: str, **kwargs):
        return run_in_transaction(
            db_session,
            lambda: ledger.add_credit(
                client_id, Decimal(amount), description="Manual credit", **kwargs
            ),
            entity_type="client",
            entity_id=client_id,
        )

    return _add


class TestAddAndSpend:
    def test_add_credit(self, ledger, add, client_record):
        assert add(client_record.id, "25.00") == Decimal("25.00")
        assert add(client_record.id, "5.50") == Decimal("30.50")

        summary = ledger.get_credit(client_record.id)
        assert summary.current_balance == Decimal("30.50")
        # Newest first
        assert [h.sequence for h in summary.history] == [2, 1]
        assert summary.history[0].previous_balance == Decimal("25.00")
        assert summary.history[0].new_balance == Decimal("30.50")

    def test_add_is_idempotent_per_payment(self, db_session, ledger, add, client_record, invoice, pay):
        payment = pay(invoice.id, "10.00").payment
        add(client_record.id, "7.00", related_payment_id=payment.id)
        assert add(client_record.id, "7.00", related_payment_id=payment.id) == Decimal("7.00")
        assert len(CreditHistoryRepository(db_session).get_ledger(client_record.id)) == 1

    def test_spend_credit(self, db_session, ledger, add, client_record):
        add(client_record.id, "20.00")
        new_balance = run_in_transaction(
            db_session,
            lambda: ledger.spend_credit(
                client_record.id,
                Decimal("8.00"),
                CreditEntryType.CREDIT_APPLIED,
                description="Applied",
            ),
            entity_type="client",
            entity_id=client_record.id,
        )
        assert new_balance == Decimal("12.00")
        last = CreditHistoryRepository(db_session).get_last(client_record.id)
        assert last.type == CreditEntryType.CREDIT_APPLIED.value

    def test_spend_rejects_non_spend_type(self, ledger, client_record):
        with pytest.raises(ValueError):
            ledger.spend_credit(
                client_record.id,
                Decimal("1.00"),
                CreditEntryType.CREDIT_ADDED,
                description="Not a spend",
            )

    def test_insufficient_credit(self, db_session, ledger, add, client_record):
        add(client_record.id, "10.00")
        with pytest.raises(InsufficientCreditError) as exc_info:
            run_in_transaction(
                db_session,
                lambda: ledger.spend_credit(client_record.id, Decimal("15.00"), description="Too much"),
                entity_type="client",
                entity_id=client_record.id,
            )
        assert exc_info.value.available_credit == Decimal("10.00")
        assert exc_info.value.requested_credit == Decimal("15.00")
        assert ledger.get_credit(client_record.id).current_balance == Decimal("10.00")

    def test_unknown_client(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_credit(uuid4())

    def test_history_invariant(self, db_session, ledger, add, client_record):
        add(client_record.id, "50.00")
        ledger_service = CreditLedgerService(db_session)
        run_in_transaction(
            db_session,
            lambda: ledger_service.spend_credit(client_record.id, Decimal("12.34"), description="Used"),
            entity_type="client",
            entity_id=client_record.id,
        )
        ledger_service.refund_client_credit(client_record.id, Decimal("7.66"), "cash")
        add(client_record.id, "1.00")

        entries = CreditHistoryRepository(db_session).get_ledger(client_record.id)
        running = Decimal("0.00")
        for entry in entries:
            assert entry.previous_balance == running
            assert entry.new_balance == entry.previous_balance + signed_credit_delta(
                entry.type, entry.amount
            )
            running = entry.new_balance
        db_session.refresh(client_record)
        assert client_record.credit_balance == running == Decimal("31.00")


class TestRefundClientCredit:
    def test_refund(self, db_session, ledger, add, client_record):
        add(client_record.id, "40.00")
        new_balance = ledger.refund_client_credit(
            client_record.id, Decimal("15.00"), "bank_transfer", refund_reference="RF-1", notes="Asked by client"
        )
        assert new_balance == Decimal("25.00")

        entry = CreditHistoryRepository(db_session).get_last(client_record.id)
        assert entry.type == CreditEntryType.CREDIT_REFUNDED.value
        assert entry.refund_method == "bank_transfer"
        assert entry.refund_reference == "RF-1"
        assert entry.notes == "Asked by client"
        assert db_session.query(Notification).filter_by(category="refund").count() == 1

    def test_refund_survives_notification_failure(self, db_session, ledger, add, client_record):
        add(client_record.id, "40.00")
        with patch.object(
            NotificationRepository, "create", side_effect=OperationalError("INSERT", {}, Exception("locked"))
        ):
            new_balance = ledger.refund_client_credit(client_record.id, Decimal("15.00"), "cash")
        assert new_balance == Decimal("25.00")
        assert ledger.get_credit(client_record.id).current_balance == Decimal("25.00")

    def test_refund_more_than_balance(self, ledger, add, client_record):
        add(client_record.id, "5.00")
        with pytest.raises(InsufficientCreditError):
            ledger.refund_client_credit(client_record.id, Decimal("5.01"), "cash")
        assert ledger.get_credit(client_record.id).current_balance == Decimal("5.00")


class TestInconsistency:
    def test_tampered_balance_halts_and_alerts(self, db_session, ledger, add, client_record):
        add(client_record.id, "10.00")
        db_session.refresh(client_record)
        client_record.credit_balance = Decimal("99.00")
        db_session.commit()

        with pytest.raises(LedgerInconsistencyError) as exc_info:
            ledger.refund_client_credit(client_record.id, Decimal("1.00"), "cash")
        assert exc_info.value.details["stored_balance"] == Decimal("99.00")
        assert exc_info.value.details["ledger_balance"] == Decimal("10.00")

        # Nothing was written and an alert was raised
        assert len(CreditHistoryRepository(db_session).get_ledger(client_record.id)) == 1
        alert = db_session.query(Notification).filter_by(category="ledger").one()
        assert alert.priority == "urgent"
        assert alert.entity_id == client_record.id
