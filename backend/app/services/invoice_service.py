"""Invoice lifecycle outside of payments: creation, sending and cancellation."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import InvalidStatusTransitionError, NotFoundError
from app.models.invoice import Invoice, InvoiceStatus, ensure_transition
from app.repositories.client_repository import ClientRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.payment_repository import PaymentRepository
from app.schemas.invoice import InvoiceCreate
from app.services.audit_service import AuditService
from app.services.ledger_math import net_paid_amount
from app.services.ledger_ops import run_ledger_operation

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.audit = AuditService(db)

    def create_invoice(self, data: InvoiceCreate, actor_id: str | None = None) -> Invoice:
        if not ClientRepository(self.db).get_by_id(data.client_id):
            raise NotFoundError("client", data.client_id)
        invoice = self.invoice_repo.create(data)
        self.audit.log_create(
            "invoice",
            invoice.id,  # type: ignore[arg-type]
            data={"invoice_number": invoice.invoice_number, "amount": invoice.amount},
            actor_id=actor_id,
        )
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("Created invoice %s for %s", invoice.invoice_number, invoice.amount)
        return invoice

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if not invoice:
            raise NotFoundError("invoice", invoice_id)
        return invoice

    def _change_status(
        self, invoice_id: UUID, target: InvoiceStatus, actor_id: str | None
    ) -> Invoice:
        def _change() -> None:
            invoice = self.invoice_repo.get_for_update(invoice_id)
            if not invoice:
                raise NotFoundError("invoice", invoice_id)
            previous = InvoiceStatus(invoice.status)
            ensure_transition(previous, target)
            if target == InvoiceStatus.CANCELLED:
                paid = net_paid_amount(self.payment_repo.get_by_invoice_id(invoice_id))
                if paid > 0:
                    # Money still held against the invoice has to be refunded first
                    raise InvalidStatusTransitionError("invoice", previous.value, target.value)
            self.invoice_repo.set_status(invoice, target)
            self.audit.log_update(
                "invoice",
                invoice_id,
                old_data={"status": previous.value},
                new_data={"status": target.value},
                actor_id=actor_id,
            )
            logger.info("Invoice %s: %s -> %s", invoice_id, previous.value, target.value)

        run_ledger_operation(self.db, _change, entity_type="invoice", entity_id=invoice_id)
        return self.get_invoice(invoice_id)

    def send_invoice(self, invoice_id: UUID, actor_id: str | None = None) -> Invoice:
        return self._change_status(invoice_id, InvoiceStatus.SENT, actor_id)

    def cancel_invoice(self, invoice_id: UUID, actor_id: str | None = None) -> Invoice:
        return self._change_status(invoice_id, InvoiceStatus.CANCELLED, actor_id)

    def mark_overdue(self, invoice_id: UUID, actor_id: str | None = None) -> Invoice:
        return self._change_status(invoice_id, InvoiceStatus.OVERDUE, actor_id)
