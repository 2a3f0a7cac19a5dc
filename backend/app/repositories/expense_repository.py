from uuid import UUID

from sqlalchemy.orm import Session

from app.models.expense import Expense, ExpenseStatus
from app.schemas.expense import ExpenseCreate
from app.services.ledger_math import to_money


class ExpenseRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        status: ExpenseStatus | None = None,
        payment_source_id: UUID | None = None,
    ) -> list[Expense]:
        query = self.db.query(Expense)
        if status:
            query = query.filter(Expense.status == status.value)
        if payment_source_id:
            query = query.filter(Expense.payment_source_id == payment_source_id)
        return query.order_by(Expense.expense_date.desc()).offset(skip).limit(limit).all()

    def get_by_id(self, expense_id: UUID) -> Expense | None:
        return self.db.query(Expense).filter(Expense.id == expense_id).first()

    def get_for_update(self, expense_id: UUID) -> Expense | None:
        return (
            self.db.query(Expense)
            .filter(Expense.id == expense_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def create(self, data: ExpenseCreate) -> Expense:
        values = data.model_dump()
        values["amount"] = to_money(data.amount)
        values["type"] = data.type.value
        values["frequency"] = data.frequency.value if data.frequency else None
        expense = Expense(**values, status=ExpenseStatus.PENDING.value)
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def get_by_payment_source_id(
        self, source_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[Expense]:
        """Expenses funded from a payment source, newest expense date first."""
        return (
            self.db.query(Expense)
            .filter(Expense.payment_source_id == source_id)
            .order_by(Expense.expense_date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
