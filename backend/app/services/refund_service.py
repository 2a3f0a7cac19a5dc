"""Refund service for paying invoice money back to the client."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, RefundExceedsPaidError
from app.models.invoice import InvoiceStatus, ensure_transition
from app.models.payment import Payment, PaymentMethod
from app.models.shared import utc_now
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.audit_service import AuditService
from app.services.ledger_math import (
    ZERO,
    applied_amount,
    net_paid_amount,
    next_refund_status,
    require_positive,
    to_money,
)
from app.services.ledger_ops import run_ledger_operation
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class RefundResult:
    refund_payment: Payment
    new_paid_amount: Decimal
    new_status: InvoiceStatus


class RefundService:
    """Service for refunding payments recorded against an invoice.

    A refund pays money out of the business. It never touches the client
    credit ledger; credit that stays with the business is refunded through
    ``CreditLedgerService.refund_client_credit`` instead.
    """

    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.audit = AuditService(db)

    def _refundable_of(self, payments: list[Payment], original_payment_id: UUID) -> Decimal:
        """What is left to refund of one payment after earlier refunds linked to it."""
        original = next((p for p in payments if p.id == original_payment_id), None)
        if original is None or original.is_refund:
            raise NotFoundError("payment", original_payment_id)
        already_refunded = -sum(
            (to_money(r.amount) for r in self.payment_repo.get_refunds_of(original_payment_id)),
            ZERO,
        )
        return max(applied_amount(original) - already_refunded, ZERO)

    def refund_invoice(
        self,
        invoice_id: UUID,
        refund_amount: Decimal,
        refund_method: PaymentMethod | str,
        refund_reference: str | None = None,
        notes: str | None = None,
        original_payment_id: UUID | None = None,
        actor_id: str | None = None,
    ) -> RefundResult:
        """Refund part or all of what has been paid on an invoice.

        Args:
            invoice_id: The invoice to refund.
            refund_amount: Positive amount to pay back.
            refund_method: How the money goes back to the client.
            refund_reference: External reference for the refund, if any.
            notes: Free-form notes stored on the refund row.
            original_payment_id: Payment being reversed. When given, the refund
                may not exceed what is left of that payment.

        Returns:
            The refund row (negative amount), the new paid amount and status.
        """
        refund_amount = require_positive(refund_amount, "refund_amount")
        method = PaymentMethod(refund_method).value

        def _refund() -> tuple[UUID, str, Decimal, InvoiceStatus]:
            invoice = self.invoice_repo.get_for_update(invoice_id)
            if not invoice:
                raise NotFoundError("invoice", invoice_id)

            payments = self.payment_repo.get_by_invoice_id(invoice_id)
            paid = net_paid_amount(payments)
            if refund_amount > paid:
                logger.info(
                    "Rejected refund of %s on invoice %s: only %s paid",
                    refund_amount,
                    invoice_id,
                    paid,
                )
                raise RefundExceedsPaidError(invoice_id, refund_amount, paid)

            if original_payment_id is not None:
                refundable = self._refundable_of(payments, original_payment_id)
                if refund_amount > refundable:
                    logger.info(
                        "Rejected refund of %s against payment %s: only %s refundable",
                        refund_amount,
                        original_payment_id,
                        refundable,
                    )
                    raise RefundExceedsPaidError(invoice_id, refund_amount, refundable)

            previous_status = InvoiceStatus(invoice.status)
            new_paid = to_money(paid - refund_amount)
            new_status = ensure_transition(
                previous_status, next_refund_status(new_paid, to_money(invoice.amount), previous_status)
            )
            paid_date = invoice.paid_date if new_status == InvoiceStatus.PAID else None

            refund = self.payment_repo.create(
                invoice_id=invoice_id,
                amount=-refund_amount,
                payment_date=utc_now(),
                payment_method=method,
                notes=notes,
                is_refund=True,
                refund_reference=refund_reference,
                original_payment_id=original_payment_id,
                created_by=actor_id,
            )
            self.audit.log_create(
                "payment",
                refund.id,  # type: ignore[arg-type]
                data={"invoice_id": invoice_id, "amount": -refund_amount, "is_refund": True},
                actor_id=actor_id,
            )
            self.audit.log_update(
                "invoice",
                invoice_id,
                old_data={"paid_amount": paid, "status": previous_status.value},
                new_data={"paid_amount": new_paid, "status": new_status.value},
                actor_id=actor_id,
                action="refunded",
            )
            self.invoice_repo.update_payment_state(invoice, new_paid, new_status, paid_date)
            logger.info(
                "Refund %s of %s on invoice %s: paid %s -> %s, status %s",
                refund.id,
                refund_amount,
                invoice_id,
                paid,
                new_paid,
                new_status.value,
            )
            return refund.id, str(invoice.invoice_number), new_paid, new_status  # type: ignore[return-value]

        refund_id, invoice_number, new_paid, new_status = run_ledger_operation(
            self.db, _refund, entity_type="invoice", entity_id=invoice_id
        )
        NotificationService(self.db).notify_invoice_refunded(
            invoice_id=invoice_id, invoice_number=invoice_number, amount=refund_amount
        )
        return RefundResult(
            refund_payment=self.payment_repo.get_by_id(refund_id),  # type: ignore[arg-type]
            new_paid_amount=new_paid,
            new_status=new_status,
        )
