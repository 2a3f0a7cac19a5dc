"""Tests for the invoice status state machine and the send/cancel operations."""

from decimal import Decimal

import pytest

from app.core.errors import InvalidStatusTransitionError
from app.models.invoice import InvoiceStatus, can_transition, ensure_transition
from app.schemas.invoice import InvoiceCreate
from app.services.invoice_service import InvoiceService
from app.services.refund_service import RefundService


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (InvoiceStatus.DRAFT, InvoiceStatus.SENT),
            (InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID),
            (InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID),
            (InvoiceStatus.PAID, InvoiceStatus.PARTIALLY_REFUNDED),
            (InvoiceStatus.PARTIALLY_REFUNDED, InvoiceStatus.REFUNDED),
            (InvoiceStatus.REFUNDED, InvoiceStatus.PAID),
            (InvoiceStatus.OVERDUE, InvoiceStatus.PAID),
            (InvoiceStatus.OVERDUE, InvoiceStatus.PARTIALLY_REFUNDED),
            (InvoiceStatus.OVERDUE, InvoiceStatus.REFUNDED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        assert ensure_transition(current, target) == target

    @pytest.mark.parametrize(
        "current,target",
        [
            (InvoiceStatus.PAID, InvoiceStatus.DRAFT),
            (InvoiceStatus.PAID, InvoiceStatus.SENT),
            (InvoiceStatus.CANCELLED, InvoiceStatus.PAID),
            (InvoiceStatus.REFUNDED, InvoiceStatus.CANCELLED),
            (InvoiceStatus.DRAFT, InvoiceStatus.REFUNDED),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            ensure_transition(current, target)
        assert exc_info.value.details == {
            "entity_type": "invoice",
            "from_status": current.value,
            "to_status": target.value,
        }
        assert exc_info.value.status_code == 409

    def test_self_transition_allowed(self):
        for status in InvoiceStatus:
            assert ensure_transition(status, status) == status

    def test_accepts_strings(self):
        assert ensure_transition("draft", "sent") == InvoiceStatus.SENT


class TestInvoiceLifecycle:
    def test_new_invoice_is_draft(self, invoice):
        assert invoice.status == InvoiceStatus.DRAFT.value
        assert invoice.paid_amount == Decimal("0.00")
        assert invoice.invoice_number.startswith("INV-")

    def test_send(self, db_session, invoice):
        sent = InvoiceService(db_session).send_invoice(invoice.id)
        assert sent.status == InvoiceStatus.SENT.value

    def test_cancel_unpaid(self, db_session, invoice):
        cancelled = InvoiceService(db_session).cancel_invoice(invoice.id)
        assert cancelled.status == InvoiceStatus.CANCELLED.value

    def test_cannot_send_cancelled(self, db_session, invoice):
        service = InvoiceService(db_session)
        service.cancel_invoice(invoice.id)
        with pytest.raises(InvalidStatusTransitionError):
            service.send_invoice(invoice.id)

    def test_cannot_cancel_with_money_held(self, db_session, invoice, pay):
        pay(invoice.id, "30.00")
        InvoiceService(db_session).mark_overdue(invoice.id)
        with pytest.raises(InvalidStatusTransitionError):
            InvoiceService(db_session).cancel_invoice(invoice.id)

    def test_cancel_after_full_refund_not_allowed(self, db_session, invoice, pay):
        pay(invoice.id, "100.00")
        RefundService(db_session).refund_invoice(invoice.id, Decimal("100.00"), "bank_transfer")
        with pytest.raises(InvalidStatusTransitionError):
            InvoiceService(db_session).cancel_invoice(invoice.id)

    def test_payment_on_cancelled_invoice_rejected(self, db_session, invoice, pay):
        InvoiceService(db_session).cancel_invoice(invoice.id)
        with pytest.raises(InvalidStatusTransitionError):
            pay(invoice.id, "10.00")
        db_session.refresh(invoice)
        assert invoice.paid_amount == Decimal("0.00")

    def test_subtotal_with_rates(self, db_session, client_record):
        created = InvoiceService(db_session).create_invoice(
            InvoiceCreate(
                client_id=client_record.id,
                subtotal=Decimal("1000"),
                tax_rate=Decimal("14"),
                discount_rate=Decimal("5"),
            )
        )
        assert created.discount_amount == Decimal("50.00")
        assert created.tax_amount == Decimal("133.00")
        assert created.amount == Decimal("1083.00")
