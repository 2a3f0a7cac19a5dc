"""Tests for InvoicePaymentService: payments, overpayment detection and credit routing."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest

from app.core.errors import (
    InvalidAmountError,
    LedgerInconsistencyError,
    NotFoundError,
    OverpaymentDetected,
)
from app.models.client_credit_history import CreditEntryType
from app.models.invoice import InvoiceStatus
from app.models.notification import Notification
from app.models.payment import PaymentMethod
from app.repositories.credit_history_repository import CreditHistoryRepository
from app.services.credit_ledger import CreditLedgerService
from app.services.invoice_payment_service import InvoicePaymentService
from app.services.reconciliation_service import ReconciliationService
from app.services.refund_service import RefundService


class TestRecordPayment:
    def test_partial_payment(self, db_session, invoice, pay):
        result = pay(invoice.id, "60.00")
        assert result.paid_amount == Decimal("60.00")
        assert result.new_status == InvoiceStatus.PARTIALLY_PAID
        assert result.credit_added == Decimal("0.00")
        assert not result.overpayment_handled
        assert result.payment.amount == Decimal("60.00")
        assert result.payment.is_overpayment is False

        db_session.refresh(invoice)
        assert invoice.paid_amount == Decimal("60.00")
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value
        assert invoice.paid_date is None

    def test_exact_remaining_pays_in_full(self, db_session, invoice, pay):
        pay(invoice.id, "60.00")
        result = pay(invoice.id, "40.00")
        assert result.new_status == InvoiceStatus.PAID
        assert result.credit_added == Decimal("0.00")
        assert result.payment.overpayment_amount == Decimal("0.00")

        db_session.refresh(invoice)
        assert invoice.paid_amount == Decimal("100.00")
        assert invoice.paid_date is not None

    def test_records_optional_fields(self, db_session, invoice):
        result = InvoicePaymentService(db_session).record_payment(
            invoice.id,
            Decimal("25"),
            payment_date=datetime(2026, 10, 1, tzinfo=UTC),
            payment_method="cash",
            bank_transfer_number="TRX-991",
            attachment_url="https://files.test/receipt.pdf",
            notes="Paid at the desk",
        )
        payment = result.payment
        assert payment.payment_method == PaymentMethod.CASH.value
        assert payment.bank_transfer_number == "TRX-991"
        assert payment.attachment_url == "https://files.test/receipt.pdf"
        assert payment.notes == "Paid at the desk"

    def test_invoice_not_found(self, pay):
        with pytest.raises(NotFoundError) as exc_info:
            pay(uuid4(), "10.00")
        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize("amount", ["0", "-10.00"])
    def test_non_positive_amount(self, invoice, pay, amount):
        with pytest.raises(InvalidAmountError):
            pay(invoice.id, amount)


class TestOverpayment:
    def test_unapproved_overpayment_rejected_with_breakdown(self, db_session, invoice, pay):
        pay(invoice.id, "60.00")
        with pytest.raises(OverpaymentDetected) as exc_info:
            pay(invoice.id, "50.00")

        err = exc_info.value
        assert err.payment_amount == Decimal("50.00")
        assert err.remaining_amount == Decimal("40.00")
        assert err.overpayment_amount == Decimal("10.00")
        assert err.invoice_amount == Decimal("100.00")
        assert err.current_paid_amount == Decimal("60.00")
        assert err.to_detail()["details"]["overpayment_amount"] == "10.00"

    def test_rejection_leaves_state_unchanged(self, db_session, invoice, pay, client_record):
        pay(invoice.id, "60.00")
        with pytest.raises(OverpaymentDetected):
            pay(invoice.id, "50.00")

        db_session.refresh(invoice)
        db_session.refresh(client_record)
        assert invoice.paid_amount == Decimal("60.00")
        assert invoice.status == InvoiceStatus.PARTIALLY_PAID.value
        assert client_record.credit_balance == Decimal("0.00")
        assert len(InvoicePaymentService(db_session).get_payments(invoice.id)) == 1
        assert CreditHistoryRepository(db_session).get_ledger(client_record.id) == []

    def test_approved_overpayment_goes_to_credit(self, db_session, invoice, pay, client_record):
        pay(invoice.id, "60.00")
        result = pay(invoice.id, "50.00", admin_approved=True)

        assert result.paid_amount == Decimal("100.00")
        assert result.new_status == InvoiceStatus.PAID
        assert result.credit_added == Decimal("10.00")
        assert result.overpayment_handled
        assert result.payment.amount == Decimal("50.00")
        assert result.payment.overpayment_amount == Decimal("10.00")
        assert result.payment.is_overpayment is True
        assert result.payment.admin_approved is True

        summary = CreditLedgerService(db_session).get_credit(client_record.id)
        assert summary.current_balance == Decimal("10.00")
        assert len(summary.history) == 1
        entry = summary.history[0]
        assert entry.type == CreditEntryType.CREDIT_ADDED.value
        assert entry.amount == Decimal("10.00")
        assert entry.previous_balance == Decimal("0.00")
        assert entry.new_balance == Decimal("10.00")
        assert entry.related_invoice_id == invoice.id
        assert entry.related_payment_id == result.payment.id

        notifications = db_session.query(Notification).filter_by(category="credit").all()
        assert len(notifications) == 1

    def test_payment_on_paid_invoice_is_all_overpayment(self, db_session, invoice, pay, client_record):
        pay(invoice.id, "100.00")
        with pytest.raises(OverpaymentDetected) as exc_info:
            pay(invoice.id, "5.00")
        assert exc_info.value.remaining_amount == Decimal("0.00")

        result = pay(invoice.id, "5.00", admin_approved=True)
        assert result.new_status == InvoiceStatus.PAID
        assert result.paid_amount == Decimal("100.00")
        db_session.refresh(client_record)
        assert client_record.credit_balance == Decimal("5.00")

    def test_credit_side_failure_alerts_and_is_replayable(
        self, db_session, invoice, pay, client_record
    ):
        pay(invoice.id, "90.00")
        with (
            patch.object(
                CreditLedgerService,
                "add_credit",
                side_effect=LedgerInconsistencyError("client", client_record.id, "boom"),
            ),
            pytest.raises(LedgerInconsistencyError) as exc_info,
        ):
            pay(invoice.id, "30.00", admin_approved=True)

        assert exc_info.value.details["overpayment_amount"] == Decimal("20.00")
        # Invoice side stays committed
        db_session.refresh(invoice)
        assert invoice.paid_amount == Decimal("100.00")
        db_session.refresh(client_record)
        assert client_record.credit_balance == Decimal("0.00")
        alerts = db_session.query(Notification).filter_by(category="ledger").all()
        assert len(alerts) == 1

        repaired = ReconciliationService(db_session).replay_missing_overpayment_credits()
        assert repaired == [exc_info.value.entity_id]
        db_session.refresh(client_record)
        assert client_record.credit_balance == Decimal("20.00")
        # A second replay finds nothing left to do
        assert ReconciliationService(db_session).replay_missing_overpayment_credits() == []


class TestPaidAmountInvariant:
    def test_paid_never_exceeds_amount(self, db_session, invoice, pay):
        for amount in ["30.00", "30.00", "30.00", "30.00", "30.00"]:
            try:
                pay(invoice.id, amount)
            except OverpaymentDetected:
                pay(invoice.id, amount, admin_approved=True)
            db_session.refresh(invoice)
            assert invoice.paid_amount <= invoice.amount
            check = ReconciliationService(db_session).verify_invoice(invoice.id)
            assert check.consistent

        assert invoice.paid_amount == Decimal("100.00")

    def test_refund_then_same_payment_round_trips(self, db_session, invoice, pay):
        pay(invoice.id, "70.00")
        db_session.refresh(invoice)
        before = (invoice.paid_amount, invoice.status)

        RefundService(db_session).refund_invoice(invoice.id, Decimal("25.00"), "cash")
        pay(invoice.id, "25.00")

        db_session.refresh(invoice)
        assert (invoice.paid_amount, invoice.status) == before

    def test_paid_amount_recomputed_from_history(self, db_session, invoice, pay):
        pay(invoice.id, "40.00")
        # A stale cached column must not change the outcome
        db_session.refresh(invoice)
        invoice.paid_amount = Decimal("0")
        db_session.commit()

        with pytest.raises(OverpaymentDetected) as exc_info:
            pay(invoice.id, "70.00")
        assert exc_info.value.current_paid_amount == Decimal("40.00")
        assert exc_info.value.remaining_amount == Decimal("60.00")
