from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.expense_payment import ExpensePayment


class ExpensePaymentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_expense_id(self, expense_id: UUID) -> list[ExpensePayment]:
        """Get an expense's payment history, newest first."""
        return (
            self.db.query(ExpensePayment)
            .filter(ExpensePayment.expense_id == expense_id)
            .order_by(ExpensePayment.payment_date.desc())
            .all()
        )

    def create(
        self,
        *,
        expense_id: UUID,
        amount: Decimal,
        payment_date: datetime,
        payment_method: str,
        attachment_url: str,
        payment_reference: str | None = None,
        notes: str | None = None,
        created_by: str | None = None,
    ) -> ExpensePayment:
        """Append an expense payment. Does not commit."""
        payment = ExpensePayment(
            expense_id=expense_id,
            amount=amount,
            payment_date=payment_date,
            payment_method=payment_method,
            attachment_url=attachment_url,
            payment_reference=payment_reference,
            notes=notes,
            created_by=created_by,
        )
        self.db.add(payment)
        self.db.flush()
        return payment
