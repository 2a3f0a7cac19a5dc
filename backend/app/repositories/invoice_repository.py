from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.invoice import Invoice, InvoiceStatus
from app.schemas.invoice import InvoiceCreate
from app.services.ledger_math import ZERO, invoice_totals, to_money


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _generate_invoice_number(self) -> str:
        """Generate a unique invoice number."""
        today = datetime.now().strftime("%Y%m%d")
        prefix = f"INV-{today}-"

        # Get the highest invoice number for today
        result = (
            self.db.query(Invoice.invoice_number)
            .filter(Invoice.invoice_number.like(f"{prefix}%"))
            .order_by(Invoice.invoice_number.desc())
            .first()
        )

        if result:
            # Extract number from INV-YYYYMMDD-XXXX format
            try:
                new_num = int(result[0].split("-")[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        client_id: UUID | None = None,
        status: InvoiceStatus | None = None,
    ) -> list[Invoice]:
        query = self.db.query(Invoice)

        if client_id:
            query = query.filter(Invoice.client_id == client_id)
        if status:
            query = query.filter(Invoice.status == status.value)

        return query.order_by(Invoice.created_at.desc()).offset(skip).limit(limit).all()

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def get_for_update(self, invoice_id: UUID) -> Invoice | None:
        """Load an invoice with a row lock held until the current transaction ends."""
        return (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def create(self, data: InvoiceCreate) -> Invoice:
        if data.subtotal is not None:
            discount_amount, tax_amount, amount = invoice_totals(
                data.subtotal, data.tax_rate, data.discount_rate
            )
            subtotal = to_money(data.subtotal)
        else:
            amount = to_money(data.amount)
            subtotal, discount_amount, tax_amount = amount, ZERO, ZERO

        invoice = Invoice(
            invoice_number=self._generate_invoice_number(),
            client_id=data.client_id,
            title=data.title,
            description=data.description,
            subtotal=subtotal,
            tax_rate=data.tax_rate,
            tax_amount=tax_amount,
            discount_rate=data.discount_rate,
            discount_amount=discount_amount,
            amount=amount,
            paid_amount=ZERO,
            due_date=data.due_date,
            notes=data.notes,
            payment_terms=data.payment_terms,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def update_payment_state(
        self,
        invoice: Invoice,
        paid_amount: Decimal,
        status: InvoiceStatus,
        paid_date: datetime | None,
    ) -> Invoice:
        """Write paid amount, status and paid date. Does not commit."""
        invoice.paid_amount = paid_amount  # type: ignore[assignment]
        invoice.status = status.value  # type: ignore[assignment]
        invoice.paid_date = paid_date  # type: ignore[assignment]
        self.db.flush()
        return invoice

    def set_status(self, invoice: Invoice, status: InvoiceStatus) -> Invoice:
        """Write a status change. Does not commit."""
        invoice.status = status.value  # type: ignore[assignment]
        self.db.flush()
        return invoice
