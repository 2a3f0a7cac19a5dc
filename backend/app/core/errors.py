"""Typed failures raised by the ledger services.

Every failure carries a machine-readable ``code``, the HTTP status a router
should answer with, and a ``details`` dict holding the numeric context that
led to the rejection. Callers catch by type, never by message.

    LedgerError
    +-- NotFoundError
    +-- InvalidAmountError
    +-- OverpaymentDetected
    +-- InsufficientCreditError
    +-- RefundExceedsPaidError
    +-- InvalidStatusTransitionError
    +-- AttachmentRequiredError
    +-- LedgerInconsistencyError
    +-- TransientStoreError
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code: str = "LEDGER_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_detail(self) -> dict[str, Any]:
        """Render the failure as a JSON-safe dict for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": _jsonable(self.details),
        }


class NotFoundError(LedgerError):
    """A referenced invoice, client, payment source, expense or payment is missing."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: UUID | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type.replace('_', ' ').capitalize()} not found",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


class InvalidAmountError(LedgerError):
    """A monetary value is non-positive, malformed or otherwise unusable."""

    code = "INVALID_AMOUNT"

    def __init__(self, message: str, amount: Any = None):
        self.amount = amount
        super().__init__(message, {"amount": amount if amount is None else str(amount)})


class OverpaymentDetected(LedgerError):
    """A payment exceeds the remaining balance and was not approved.

    Not an error so much as a decision point: the caller may re-submit the
    same payment with ``admin_approved=True`` to route the excess into the
    client's credit balance.
    """

    code = "OVERPAYMENT_DETECTED"

    def __init__(
        self,
        payment_amount: Decimal,
        remaining_amount: Decimal,
        overpayment_amount: Decimal,
        invoice_amount: Decimal,
        current_paid_amount: Decimal,
    ):
        self.payment_amount = payment_amount
        self.remaining_amount = remaining_amount
        self.overpayment_amount = overpayment_amount
        self.invoice_amount = invoice_amount
        self.current_paid_amount = current_paid_amount
        super().__init__(
            f"Payment amount ({payment_amount}) exceeds remaining balance "
            f"({remaining_amount}). Overpayment of {overpayment_amount} detected.",
            {
                "payment_amount": payment_amount,
                "remaining_amount": remaining_amount,
                "overpayment_amount": overpayment_amount,
                "invoice_amount": invoice_amount,
                "current_paid_amount": current_paid_amount,
            },
        )


class InsufficientCreditError(LedgerError):
    """The client's credit balance cannot cover the requested amount."""

    code = "INSUFFICIENT_CREDIT"

    def __init__(self, client_id: UUID, available_credit: Decimal, requested_credit: Decimal):
        self.client_id = client_id
        self.available_credit = available_credit
        self.requested_credit = requested_credit
        super().__init__(
            "Insufficient credit balance",
            {
                "client_id": client_id,
                "available_credit": available_credit,
                "requested_credit": requested_credit,
            },
        )


class RefundExceedsPaidError(LedgerError):
    """A refund is larger than what has been paid."""

    code = "REFUND_EXCEEDS_PAID"

    def __init__(self, invoice_id: UUID, refund_amount: Decimal, paid_amount: Decimal):
        self.invoice_id = invoice_id
        self.refund_amount = refund_amount
        self.paid_amount = paid_amount
        super().__init__(
            f"Refund amount ({refund_amount}) exceeds paid amount ({paid_amount})",
            {
                "invoice_id": invoice_id,
                "refund_amount": refund_amount,
                "paid_amount": paid_amount,
            },
        )


class InvalidStatusTransitionError(LedgerError):
    code = "INVALID_STATUS_TRANSITION"
    status_code = 409

    def __init__(self, entity_type: str, from_status: str, to_status: str):
        self.entity_type = entity_type
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move {entity_type} from '{from_status}' to '{to_status}'",
            {"entity_type": entity_type, "from_status": from_status, "to_status": to_status},
        )


class AttachmentRequiredError(LedgerError):
    code = "ATTACHMENT_REQUIRED"

    def __init__(self) -> None:
        super().__init__("Payment attachment is mandatory")


class LedgerInconsistencyError(LedgerError):
    """A stored running balance disagrees with its ledger history.

    Fatal: the operation halts and an alert is raised. Balances are never
    healed by guessing.
    """

    code = "LEDGER_INCONSISTENCY"
    status_code = 500

    def __init__(self, entity_type: str, entity_id: UUID, message: str, **details: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            message,
            {"entity_type": entity_type, "entity_id": entity_id, **details},
        )


class TransientStoreError(LedgerError):
    """Lock contention or a stale write persisted after all retries."""

    code = "TRANSIENT_STORE_ERROR"
    status_code = 503

    def __init__(self, entity_type: str, entity_id: UUID | str, attempts: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            f"Could not commit {entity_type} {entity_id} after {attempts} attempts",
            {"entity_type": entity_type, "entity_id": entity_id, "attempts": attempts},
        )
