"""ClientCreditHistory model: append-only ledger of a client's credit balance."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid, utc_now


class CreditEntryType(str, Enum):
    CREDIT_ADDED = "credit_added"
    CREDIT_USED = "credit_used"
    CREDIT_REFUNDED = "credit_refunded"
    CREDIT_APPLIED = "credit_applied"


class ClientCreditHistory(Base):
    """One balance-affecting credit event.

    ``amount`` is unsigned; the sign comes from ``type``. ``sequence`` orders
    a client's entries and doubles as a guard against two writers appending
    the same position concurrently.
    """

    __tablename__ = "client_credit_history"
    __table_args__ = (
        UniqueConstraint("client_id", "sequence", name="uq_client_credit_history_client_sequence"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)
    amount = Column(MONEY, nullable=False)
    related_invoice_id = Column(
        UUIDType, ForeignKey("invoices.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    related_payment_id = Column(
        UUIDType, ForeignKey("payments.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    description = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    refund_method = Column(String(30), nullable=True)
    refund_reference = Column(String(255), nullable=True)
    previous_balance = Column(MONEY, nullable=False)
    new_balance = Column(MONEY, nullable=False)

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
