"""Payment model: append-only record of money moving against an invoice."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid, utc_now


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    CHECK = "check"
    OTHER = "other"
    CREDIT_BALANCE = "credit_balance"


class Payment(Base):
    """Payment model - never updated after insert.

    ``amount`` is signed: positive for a payment, negative for a refund.
    ``overpayment_amount`` is the part of a payment diverted to client credit.
    """

    __tablename__ = "payments"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    invoice_id = Column(
        UUIDType, ForeignKey("invoices.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    amount = Column(MONEY, nullable=False)
    overpayment_amount = Column(MONEY, nullable=False, default=0)
    is_overpayment = Column(Boolean, nullable=False, default=False)
    admin_approved = Column(Boolean, nullable=False, default=False)

    payment_date = Column(DateTime(timezone=True), nullable=False)
    payment_method = Column(String(30), nullable=False)
    bank_transfer_number = Column(String(255), nullable=True)
    attachment_url = Column(String(1024), nullable=True)
    notes = Column(Text, nullable=True)

    # Refund fields
    is_refund = Column(Boolean, nullable=False, default=False)
    refund_reference = Column(String(255), nullable=True)
    original_payment_id = Column(
        UUIDType, ForeignKey("payments.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    created_by = Column(String(255), nullable=True)
    approved_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
