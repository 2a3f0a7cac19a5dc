from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, func

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class ExpenseType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class ExpenseFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(MONEY, nullable=False)
    category = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default=ExpenseType.VARIABLE.value)
    frequency = Column(String(20), nullable=True)

    expense_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    next_due_date = Column(DateTime(timezone=True), nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)

    payment_method = Column(String(30), nullable=False)
    payment_reference = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=ExpenseStatus.PENDING.value)

    attachment_url = Column(String(1024), nullable=False)
    attachment_type = Column(String(30), nullable=False)
    notes = Column(Text, nullable=True)

    is_recurring = Column(Boolean, nullable=False, default=False)
    payment_source_id = Column(
        UUIDType, ForeignKey("payment_sources.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    related_client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
