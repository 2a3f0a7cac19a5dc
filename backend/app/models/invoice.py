from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from app.core.database import Base
from app.core.errors import InvalidStatusTransitionError
from app.models.shared import MONEY, RATE, UUIDType, generate_uuid


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


# Staying in the same status is always allowed
INVOICE_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset(
        {
            InvoiceStatus.SENT,
            InvoiceStatus.PARTIALLY_PAID,
            InvoiceStatus.PAID,
            InvoiceStatus.CANCELLED,
        }
    ),
    InvoiceStatus.SENT: frozenset(
        {
            InvoiceStatus.PARTIALLY_PAID,
            InvoiceStatus.PAID,
            InvoiceStatus.OVERDUE,
            InvoiceStatus.CANCELLED,
        }
    ),
    InvoiceStatus.OVERDUE: frozenset(
        {
            InvoiceStatus.PARTIALLY_PAID,
            InvoiceStatus.PAID,
            InvoiceStatus.CANCELLED,
            InvoiceStatus.PARTIALLY_REFUNDED,
            InvoiceStatus.REFUNDED,
        }
    ),
    InvoiceStatus.PARTIALLY_PAID: frozenset(
        {
            InvoiceStatus.PAID,
            InvoiceStatus.OVERDUE,
            InvoiceStatus.PARTIALLY_REFUNDED,
            InvoiceStatus.REFUNDED,
        }
    ),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.PARTIALLY_REFUNDED, InvoiceStatus.REFUNDED}),
    InvoiceStatus.PARTIALLY_REFUNDED: frozenset(
        {InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID, InvoiceStatus.REFUNDED}
    ),
    InvoiceStatus.REFUNDED: frozenset({InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID}),
    InvoiceStatus.CANCELLED: frozenset(),
}


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    """Return True if an invoice may move from ``current`` to ``target``."""
    return current == target or target in INVOICE_TRANSITIONS[current]


def ensure_transition(current: InvoiceStatus | str, target: InvoiceStatus | str) -> InvoiceStatus:
    """Validate a status change and return the target status.

    Raises:
        InvalidStatusTransitionError: the state machine has no such edge
            (for example ``paid -> draft`` or any change out of ``cancelled``).
    """
    current = InvoiceStatus(current)
    target = InvoiceStatus(target)
    if not can_transition(current, target):
        raise InvalidStatusTransitionError("invoice", current.value, target.value)
    return target


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    invoice_number = Column(String(50), unique=True, index=True, nullable=False)
    client_id = Column(
        UUIDType, ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False, default="Invoice")
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.DRAFT.value)

    # Amounts (flat rates supplied by the caller, no tax-jurisdiction logic)
    subtotal = Column(MONEY, nullable=False, default=0)
    tax_rate = Column(RATE, nullable=False, default=0)
    tax_amount = Column(MONEY, nullable=False, default=0)
    discount_rate = Column(RATE, nullable=False, default=0)
    discount_amount = Column(MONEY, nullable=False, default=0)
    amount = Column(MONEY, nullable=False)
    paid_amount = Column(MONEY, nullable=False, default=0)

    # Dates
    invoice_date = Column(DateTime(timezone=True), server_default=func.now())
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_date = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)
    payment_terms = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
