"""Pure ledger arithmetic: remaining balances, overpayment splits, status rules.

No I/O. All values are fixed-point ``Decimal`` rounded to two places.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Protocol

from app.core.errors import InvalidAmountError
from app.models.client_credit_history import CreditEntryType
from app.models.invoice import InvoiceStatus

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class PaymentLike(Protocol):
    amount: Any
    overpayment_amount: Any
    is_refund: Any


def to_money(value: Any) -> Decimal:
    """Convert ``value`` to a two-place Decimal.

    Floats go through ``str`` so 0.1 stays 0.10 rather than its binary
    expansion.

    Raises:
        InvalidAmountError: the value is missing, malformed or not finite.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError("Amount is required", value)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(f"Malformed amount: {value!r}", value) from None
    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite: {value!r}", value)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def require_positive(value: Any, field: str = "amount") -> Decimal:
    """Convert ``value`` to money and reject anything not strictly positive."""
    amount = to_money(value)
    if amount <= 0:
        raise InvalidAmountError(f"{field.replace('_', ' ').capitalize()} must be positive", amount)
    return amount


def compute_remaining(invoice_amount: Decimal, current_paid_amount: Decimal) -> Decimal:
    """Outstanding balance of an invoice. Zero once fully paid."""
    remaining = to_money(invoice_amount) - to_money(current_paid_amount)
    return max(remaining, ZERO)


def split_payment(payment_amount: Decimal, remaining: Decimal) -> tuple[Decimal, Decimal]:
    """Split a payment into ``(applied_to_invoice, overpayment)``."""
    payment_amount = to_money(payment_amount)
    remaining = to_money(remaining)
    applied = min(payment_amount, remaining)
    overpayment = max(ZERO, payment_amount - remaining)
    return applied, overpayment


def next_invoice_status(
    paid_amount: Decimal, invoice_amount: Decimal, previous_status: InvoiceStatus | str
) -> InvoiceStatus:
    """Status after money has been applied to an invoice."""
    if paid_amount >= invoice_amount:
        return InvoiceStatus.PAID
    if paid_amount > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus(previous_status)


def next_refund_status(
    new_paid_amount: Decimal, invoice_amount: Decimal, previous_status: InvoiceStatus | str
) -> InvoiceStatus:
    """Status after a refund has been taken out of an invoice."""
    if new_paid_amount <= 0:
        return InvoiceStatus.REFUNDED
    if new_paid_amount < invoice_amount:
        return InvoiceStatus.PARTIALLY_REFUNDED
    return InvoiceStatus(previous_status)


def signed_credit_delta(entry_type: CreditEntryType | str, amount: Decimal) -> Decimal:
    """Signed effect of a credit history entry on the client's balance."""
    amount = to_money(amount)
    if CreditEntryType(entry_type) == CreditEntryType.CREDIT_ADDED:
        return amount
    return -amount


def applied_amount(payment: PaymentLike) -> Decimal:
    """Portion of a payment row that counts towards the invoice's paid amount.

    Refund rows count with their (negative) amount; regular payments count
    without the overpayment portion that was diverted to client credit.
    """
    amount = to_money(payment.amount)
    if payment.is_refund:
        return amount
    return amount - to_money(payment.overpayment_amount or ZERO)


def net_paid_amount(payments: Iterable[PaymentLike]) -> Decimal:
    """Paid amount of an invoice, recomputed from its payment history."""
    return sum((applied_amount(p) for p in payments), ZERO)


def invoice_totals(
    subtotal: Decimal, tax_rate: Decimal, discount_rate: Decimal
) -> tuple[Decimal, Decimal, Decimal]:
    """Return ``(discount_amount, tax_amount, amount)`` for flat percentage rates.

    The discount applies to the subtotal; tax applies to the discounted subtotal.
    """
    subtotal = to_money(subtotal)
    discount_amount = to_money(subtotal * Decimal(str(discount_rate)) / HUNDRED)
    taxable = subtotal - discount_amount
    tax_amount = to_money(taxable * Decimal(str(tax_rate)) / HUNDRED)
    return discount_amount, tax_amount, taxable + tax_amount
