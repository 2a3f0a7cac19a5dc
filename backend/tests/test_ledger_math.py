"""Tests for the pure ledger arithmetic."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.errors import InvalidAmountError
from app.models.client_credit_history import CreditEntryType
from app.models.invoice import InvoiceStatus
from app.services.ledger_math import (
    applied_amount,
    compute_remaining,
    invoice_totals,
    net_paid_amount,
    next_invoice_status,
    next_refund_status,
    require_positive,
    signed_credit_delta,
    split_payment,
    to_money,
)


def _payment(amount, overpayment="0", is_refund=False):
    return SimpleNamespace(
        amount=Decimal(amount), overpayment_amount=Decimal(overpayment), is_refund=is_refund
    )


class TestToMoney:
    def test_quantizes_to_cents(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(Decimal("3")) == Decimal("3.00")

    def test_float_goes_through_str(self):
        assert to_money(0.1) == Decimal("0.10")
        assert to_money(0.1) + to_money(0.2) == Decimal("0.30")

    @pytest.mark.parametrize("value", [None, "abc", "NaN", "Infinity", True])
    def test_rejects_malformed(self, value):
        with pytest.raises(InvalidAmountError):
            to_money(value)

    @pytest.mark.parametrize("value", ["0", "-5", "0.001"])
    def test_require_positive_rejects_non_positive(self, value):
        with pytest.raises(InvalidAmountError) as exc_info:
            require_positive(value)
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_require_positive_names_field(self):
        with pytest.raises(InvalidAmountError, match="Refund amount must be positive"):
            require_positive("0", "refund_amount")


class TestRemainingAndSplit:
    def test_compute_remaining(self):
        assert compute_remaining(Decimal("100"), Decimal("60")) == Decimal("40.00")

    def test_compute_remaining_never_negative(self):
        assert compute_remaining(Decimal("100"), Decimal("120")) == Decimal("0.00")

    def test_split_within_remaining(self):
        assert split_payment(Decimal("30"), Decimal("40")) == (Decimal("30.00"), Decimal("0.00"))

    def test_split_exact_remaining(self):
        assert split_payment(Decimal("40"), Decimal("40")) == (Decimal("40.00"), Decimal("0.00"))

    def test_split_overpayment(self):
        assert split_payment(Decimal("50"), Decimal("40")) == (Decimal("40.00"), Decimal("10.00"))

    def test_split_when_nothing_remaining(self):
        assert split_payment(Decimal("25"), Decimal("0")) == (Decimal("0.00"), Decimal("25.00"))


class TestStatusRules:
    def test_paid_when_covered(self):
        assert next_invoice_status(Decimal("100"), Decimal("100"), "sent") == InvoiceStatus.PAID

    def test_partially_paid(self):
        assert (
            next_invoice_status(Decimal("1"), Decimal("100"), "draft")
            == InvoiceStatus.PARTIALLY_PAID
        )

    def test_unchanged_when_nothing_paid(self):
        assert next_invoice_status(Decimal("0"), Decimal("100"), "cancelled") == InvoiceStatus.CANCELLED

    def test_refund_to_zero(self):
        assert next_refund_status(Decimal("0"), Decimal("100"), "paid") == InvoiceStatus.REFUNDED

    def test_partial_refund(self):
        assert (
            next_refund_status(Decimal("60"), Decimal("100"), "paid")
            == InvoiceStatus.PARTIALLY_REFUNDED
        )


class TestCreditDelta:
    @pytest.mark.parametrize(
        "entry_type,expected",
        [
            (CreditEntryType.CREDIT_ADDED, Decimal("5.00")),
            (CreditEntryType.CREDIT_USED, Decimal("-5.00")),
            (CreditEntryType.CREDIT_APPLIED, Decimal("-5.00")),
            (CreditEntryType.CREDIT_REFUNDED, Decimal("-5.00")),
        ],
    )
    def test_sign_follows_type(self, entry_type, expected):
        assert signed_credit_delta(entry_type, Decimal("5")) == expected

    def test_accepts_raw_string(self):
        assert signed_credit_delta("credit_added", "2.50") == Decimal("2.50")


class TestNetPaid:
    def test_overpayment_portion_excluded(self):
        assert applied_amount(_payment("50", overpayment="10")) == Decimal("40.00")

    def test_refund_counts_negative(self):
        assert applied_amount(_payment("-40", is_refund=True)) == Decimal("-40.00")

    def test_sum_of_history(self):
        payments = [
            _payment("60"),
            _payment("50", overpayment="10"),
            _payment("-40", is_refund=True),
        ]
        assert net_paid_amount(payments) == Decimal("60.00")

    def test_empty_history(self):
        assert net_paid_amount([]) == Decimal("0.00")


class TestInvoiceTotals:
    def test_discount_then_tax(self):
        discount, tax, amount = invoice_totals(Decimal("200"), Decimal("14"), Decimal("10"))
        assert discount == Decimal("20.00")
        assert tax == Decimal("25.20")
        assert amount == Decimal("205.20")

    def test_no_rates(self):
        assert invoice_totals(Decimal("99.99"), Decimal("0"), Decimal("0")) == (
            Decimal("0.00"),
            Decimal("0.00"),
            Decimal("99.99"),
        )
