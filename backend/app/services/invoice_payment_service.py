"""Record payments against invoices and route overpayments into client credit."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import LedgerError, LedgerInconsistencyError, NotFoundError, OverpaymentDetected
from app.core.transaction import run_in_transaction
from app.models.invoice import Invoice, InvoiceStatus, ensure_transition
from app.models.payment import Payment, PaymentMethod
from app.models.shared import utc_now
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.audit_service import AuditService
from app.services.credit_ledger import CreditLedgerService
from app.services.ledger_math import (
    ZERO,
    compute_remaining,
    net_paid_amount,
    next_invoice_status,
    require_positive,
    split_payment,
    to_money,
)
from app.services.ledger_ops import run_ledger_operation
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    payment: Payment
    new_status: InvoiceStatus
    paid_amount: Decimal
    credit_added: Decimal

    @property
    def overpayment_handled(self) -> bool:
        return self.credit_added > 0


@dataclass
class _RecordedPayment:
    payment_id: UUID
    client_id: UUID
    invoice_number: str
    new_status: InvoiceStatus
    paid_amount: Decimal
    overpayment: Decimal


def apply_to_invoice(
    invoice_repo: InvoiceRepository,
    audit: AuditService,
    invoice: Invoice,
    current_paid: Decimal,
    applied: Decimal,
    actor_id: str | None = None,
) -> tuple[Decimal, InvoiceStatus]:
    """Add ``applied`` to an invoice's paid amount and move its status along.

    Shared by payments and credit applications. Runs inside the caller's
    transaction and returns ``(new_paid_amount, new_status)``.
    """
    invoice_amount = to_money(invoice.amount)
    previous_status = InvoiceStatus(invoice.status)
    new_paid = to_money(current_paid + applied)
    new_status = ensure_transition(
        previous_status, next_invoice_status(new_paid, invoice_amount, previous_status)
    )

    paid_date = invoice.paid_date
    if new_status == InvoiceStatus.PAID and previous_status != InvoiceStatus.PAID:
        paid_date = utc_now()

    old_values = {"paid_amount": to_money(invoice.paid_amount), "status": previous_status.value}
    invoice_repo.update_payment_state(invoice, new_paid, new_status, paid_date)
    audit.log_update(
        "invoice",
        invoice.id,  # type: ignore[arg-type]
        old_data=old_values,
        new_data={"paid_amount": new_paid, "status": new_status.value},
        actor_id=actor_id,
        action="payment_applied",
    )
    return new_paid, new_status


class InvoicePaymentService:
    """Reconciles incoming payments with invoice balances."""

    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.credit_ledger = CreditLedgerService(db)
        self.audit = AuditService(db)
        self.notifications = NotificationService(db)

    def get_payments(self, invoice_id: UUID) -> list[Payment]:
        if not self.invoice_repo.get_by_id(invoice_id):
            raise NotFoundError("invoice", invoice_id)
        return self.payment_repo.get_by_invoice_id(invoice_id)

    def record_payment(
        self,
        invoice_id: UUID,
        amount: Decimal,
        payment_date: datetime,
        payment_method: PaymentMethod | str,
        bank_transfer_number: str | None = None,
        attachment_url: str | None = None,
        notes: str | None = None,
        admin_approved: bool = False,
        actor_id: str | None = None,
    ) -> PaymentResult:
        """Record a payment against an invoice.

        The paid amount is recomputed from the invoice's payment history, never
        read from the cached column. A payment larger than the remaining
        balance is rejected with ``OverpaymentDetected`` unless
        ``admin_approved`` is set, in which case the excess is added to the
        client's credit once the invoice side has been committed.

        Raises:
            NotFoundError: the invoice does not exist.
            InvalidAmountError: ``amount`` is not a positive money value.
            OverpaymentDetected: the payment exceeds the remaining balance and
                was not approved. Nothing is written.
            InvalidStatusTransitionError: the invoice cannot take payments
                (it is cancelled).
            LedgerInconsistencyError: the invoice side was committed but the
                client credit could not be written. An alert has been raised
                and the credit can be replayed.
        """
        amount = require_positive(amount)
        method = PaymentMethod(payment_method).value

        def _record() -> _RecordedPayment:
            invoice = self.invoice_repo.get_for_update(invoice_id)
            if not invoice:
                raise NotFoundError("invoice", invoice_id)

            invoice_amount = to_money(invoice.amount)
            current_paid = net_paid_amount(self.payment_repo.get_by_invoice_id(invoice_id))
            remaining = compute_remaining(invoice_amount, current_paid)
            applied, overpayment = split_payment(amount, remaining)

            # A cancelled invoice must fail before the caller is asked to approve anything
            ensure_transition(
                invoice.status,
                next_invoice_status(current_paid + applied, invoice_amount, invoice.status),
            )

            if overpayment > 0 and not admin_approved:
                logger.info(
                    "Overpayment on invoice %s: payment %s, remaining %s, excess %s",
                    invoice_id,
                    amount,
                    remaining,
                    overpayment,
                )
                raise OverpaymentDetected(
                    payment_amount=amount,
                    remaining_amount=remaining,
                    overpayment_amount=overpayment,
                    invoice_amount=invoice_amount,
                    current_paid_amount=current_paid,
                )

            payment = self.payment_repo.create(
                invoice_id=invoice_id,
                amount=amount,
                overpayment_amount=overpayment,
                is_overpayment=overpayment > 0,
                admin_approved=admin_approved,
                payment_date=payment_date,
                payment_method=method,
                bank_transfer_number=bank_transfer_number,
                attachment_url=attachment_url,
                notes=notes,
                created_by=actor_id,
                approved_by=actor_id if admin_approved and overpayment > 0 else None,
            )
            self.audit.log_create(
                "payment",
                payment.id,  # type: ignore[arg-type]
                data={"invoice_id": invoice_id, "amount": amount, "overpayment_amount": overpayment},
                actor_id=actor_id,
            )
            new_paid, new_status = apply_to_invoice(
                self.invoice_repo, self.audit, invoice, current_paid, applied, actor_id
            )
            logger.info(
                "Payment %s of %s on invoice %s: paid %s -> %s, status %s",
                payment.id,
                amount,
                invoice_id,
                current_paid,
                new_paid,
                new_status.value,
            )
            return _RecordedPayment(
                payment_id=payment.id,  # type: ignore[arg-type]
                client_id=invoice.client_id,  # type: ignore[arg-type]
                invoice_number=str(invoice.invoice_number),
                new_status=new_status,
                paid_amount=new_paid,
                overpayment=overpayment,
            )

        recorded = run_ledger_operation(
            self.db, _record, entity_type="invoice", entity_id=invoice_id
        )

        credit_added = ZERO
        if recorded.overpayment > 0:
            self._credit_overpayment(invoice_id, recorded, actor_id)
            credit_added = recorded.overpayment

        payment = self.payment_repo.get_by_id(recorded.payment_id)
        return PaymentResult(
            payment=payment,  # type: ignore[arg-type]
            new_status=recorded.new_status,
            paid_amount=recorded.paid_amount,
            credit_added=credit_added,
        )

    def _credit_overpayment(
        self, invoice_id: UUID, recorded: _RecordedPayment, actor_id: str | None
    ) -> None:
        try:
            run_in_transaction(
                self.db,
                lambda: self.credit_ledger.add_credit(
                    recorded.client_id,
                    recorded.overpayment,
                    description=f"Overpayment on invoice {recorded.invoice_number}",
                    related_invoice_id=invoice_id,
                    related_payment_id=recorded.payment_id,
                    actor_id=actor_id,
                ),
                entity_type="client",
                entity_id=recorded.client_id,
            )
        except LedgerError as exc:
            logger.exception(
                "Payment %s committed on invoice %s but overpayment credit of %s "
                "for client %s failed",
                recorded.payment_id,
                invoice_id,
                recorded.overpayment,
                recorded.client_id,
            )
            self.notifications.alert_ledger(
                entity_type="payment",
                entity_id=recorded.payment_id,
                message=(
                    f"Overpayment credit of {recorded.overpayment} for client "
                    f"{recorded.client_id} was not applied ({exc.code}). Replay it."
                ),
            )
            raise LedgerInconsistencyError(
                "payment",
                recorded.payment_id,
                "Payment recorded but overpayment credit was not applied",
                invoice_id=invoice_id,
                client_id=recorded.client_id,
                overpayment_amount=recorded.overpayment,
                cause=exc.code,
            ) from exc

        self.notifications.notify_overpayment_credited(
            client_id=recorded.client_id,
            invoice_number=recorded.invoice_number,
            amount=recorded.overpayment,
        )
