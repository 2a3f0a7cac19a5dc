"""Payment repository for data access.

Payments are append-only: there is no update or delete.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.payment import Payment


class PaymentRepository:
    """Repository for Payment model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        """Get a payment by ID."""
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_by_invoice_id(self, invoice_id: UUID) -> list[Payment]:
        """Get every payment and refund recorded against an invoice, oldest first."""
        return (
            self.db.query(Payment)
            .filter(Payment.invoice_id == invoice_id)
            .order_by(Payment.created_at.asc())
            .all()
        )

    def get_refunds_of(self, original_payment_id: UUID) -> list[Payment]:
        """Get refunds linked to the payment they reverse."""
        return (
            self.db.query(Payment)
            .filter(Payment.original_payment_id == original_payment_id, Payment.is_refund.is_(True))
            .all()
        )

    def get_approved_overpayments(self) -> list[Payment]:
        """Get payments whose excess was approved for client credit."""
        return (
            self.db.query(Payment)
            .filter(
                Payment.is_overpayment.is_(True),
                Payment.admin_approved.is_(True),
                Payment.is_refund.is_(False),
            )
            .order_by(Payment.created_at.asc())
            .all()
        )

    def create(
        self,
        *,
        invoice_id: UUID,
        amount: Decimal,
        payment_date: datetime,
        payment_method: str,
        overpayment_amount: Decimal = Decimal("0"),
        is_overpayment: bool = False,
        admin_approved: bool = False,
        bank_transfer_number: str | None = None,
        attachment_url: str | None = None,
        notes: str | None = None,
        is_refund: bool = False,
        refund_reference: str | None = None,
        original_payment_id: UUID | None = None,
        created_by: str | None = None,
        approved_by: str | None = None,
    ) -> Payment:
        """Append a payment row. Does not commit."""
        payment = Payment(
            invoice_id=invoice_id,
            amount=amount,
            overpayment_amount=overpayment_amount,
            is_overpayment=is_overpayment,
            admin_approved=admin_approved,
            payment_date=payment_date,
            payment_method=payment_method,
            bank_transfer_number=bank_transfer_number,
            attachment_url=attachment_url,
            notes=notes,
            is_refund=is_refund,
            refund_reference=refund_reference,
            original_payment_id=original_payment_id,
            created_by=created_by,
            approved_by=approved_by,
        )
        self.db.add(payment)
        self.db.flush()
        return payment
