"""PaymentSourceTransaction model for tracking payment source balance changes."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid, utc_now


class SourceTransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    ADJUSTMENT = "adjustment"


class SourceReferenceType(str, Enum):
    EXPENSE = "expense"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    INITIAL_BALANCE = "initial_balance"


class PaymentSourceTransaction(Base):
    """Append-only balance change. ``amount`` is signed."""

    __tablename__ = "payment_source_transactions"
    __table_args__ = (
        UniqueConstraint(
            "payment_source_id", "sequence", name="uq_payment_source_transactions_source_sequence"
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    payment_source_id = Column(
        UUIDType, ForeignKey("payment_sources.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(String(1024), nullable=True)
    reference_id = Column(UUIDType, nullable=True, index=True)
    reference_type = Column(String(30), nullable=True)
    balance_before = Column(MONEY, nullable=False)
    balance_after = Column(MONEY, nullable=False)

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
