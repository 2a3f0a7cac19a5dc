"""ExpensePayment model: payment history of an expense (recurring ones pay many times)."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid, utc_now


class ExpensePayment(Base):
    __tablename__ = "expense_payments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    expense_id = Column(
        UUIDType, ForeignKey("expenses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount = Column(MONEY, nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=False)
    payment_method = Column(String(30), nullable=False)
    payment_reference = Column(String(255), nullable=True)
    attachment_url = Column(String(1024), nullable=False)
    notes = Column(Text, nullable=True)
    payment_source_transaction_id = Column(
        UUIDType,
        ForeignKey("payment_source_transactions.id", ondelete="RESTRICT"),
        nullable=True,
    )

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
