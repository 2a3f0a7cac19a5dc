"""Spend a client's credit balance against one of their outstanding invoices."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import InsufficientCreditError, InvalidAmountError, NotFoundError
from app.models.client_credit_history import CreditEntryType
from app.models.payment import Payment, PaymentMethod
from app.models.shared import utc_now
from app.repositories.client_repository import ClientRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.payment_repository import PaymentRepository
from app.services.audit_service import AuditService
from app.services.credit_ledger import CreditLedgerService
from app.services.invoice_payment_service import apply_to_invoice
from app.services.ledger_math import compute_remaining, net_paid_amount, require_positive, to_money
from app.services.ledger_ops import run_ledger_operation

logger = logging.getLogger(__name__)


@dataclass
class CreditApplicationResult:
    payment: Payment
    credit_used: Decimal
    remaining_credit: Decimal


class CreditApplicationService:
    def __init__(self, db: Session):
        self.db = db
        self.client_repo = ClientRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.credit_ledger = CreditLedgerService(db)
        self.audit = AuditService(db)

    def apply_credit(
        self,
        invoice_id: UUID,
        client_id: UUID,
        requested_amount: Decimal,
        actor_id: str | None = None,
    ) -> CreditApplicationResult:
        """Pay an invoice from the client's credit balance.

        The credit used is capped at the invoice's remaining balance, so
        applying credit can never create a new overpayment. The credit debit,
        the payment row and the invoice update commit together.
        """
        requested_amount = require_positive(requested_amount, "credit_amount")

        def _apply() -> tuple[UUID, Decimal, Decimal]:
            client = self.client_repo.get_by_id(client_id)
            if not client:
                raise NotFoundError("client", client_id)
            available = to_money(client.credit_balance)
            if requested_amount > available:
                logger.info(
                    "Rejected credit application of %s for client %s: only %s available",
                    requested_amount,
                    client_id,
                    available,
                )
                raise InsufficientCreditError(client_id, available, requested_amount)

            invoice = self.invoice_repo.get_for_update(invoice_id)
            if not invoice or invoice.client_id != client_id:
                raise NotFoundError("invoice", invoice_id)

            current_paid = net_paid_amount(self.payment_repo.get_by_invoice_id(invoice_id))
            remaining = compute_remaining(to_money(invoice.amount), current_paid)
            if remaining == 0:
                raise InvalidAmountError("Invoice has no outstanding balance", remaining)
            credit_used = min(requested_amount, remaining)

            payment = self.payment_repo.create(
                invoice_id=invoice_id,
                amount=credit_used,
                admin_approved=True,
                payment_date=utc_now(),
                payment_method=PaymentMethod.CREDIT_BALANCE.value,
                notes="Paid from client credit balance",
                created_by=actor_id,
                approved_by=actor_id,
            )
            remaining_credit = self.credit_ledger.spend_credit(
                client_id,
                credit_used,
                CreditEntryType.CREDIT_USED,
                description=f"Credit applied to invoice {invoice.invoice_number}",
                related_invoice_id=invoice_id,
                related_payment_id=payment.id,  # type: ignore[arg-type]
                actor_id=actor_id,
            )
            self.audit.log_create(
                "payment",
                payment.id,  # type: ignore[arg-type]
                data={"invoice_id": invoice_id, "amount": credit_used, "method": "credit_balance"},
                actor_id=actor_id,
            )
            apply_to_invoice(
                self.invoice_repo, self.audit, invoice, current_paid, credit_used, actor_id
            )
            logger.info(
                "Applied %s credit of client %s to invoice %s (requested %s)",
                credit_used,
                client_id,
                invoice_id,
                requested_amount,
            )
            return payment.id, credit_used, remaining_credit  # type: ignore[return-value]

        payment_id, credit_used, remaining_credit = run_ledger_operation(
            self.db, _apply, entity_type="invoice", entity_id=invoice_id
        )
        return CreditApplicationResult(
            payment=self.payment_repo.get_by_id(payment_id),  # type: ignore[arg-type]
            credit_used=credit_used,
            remaining_credit=remaining_credit,
        )
