"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.invoice import InvoiceStatus
from app.models.payment import PaymentMethod


class PaymentRecord(BaseModel):
    """Schema for recording a payment against an invoice."""

    amount: Decimal = Field(gt=0)
    payment_date: datetime
    payment_method: PaymentMethod
    bank_transfer_number: str | None = Field(default=None, max_length=255)
    attachment_url: str | None = Field(default=None, max_length=1024)
    notes: str | None = None
    admin_approved: bool = False


class InvoiceRefundRequest(BaseModel):
    """Schema for refunding money paid against an invoice."""

    refund_amount: Decimal = Field(gt=0)
    refund_method: PaymentMethod
    refund_reference: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    original_payment_id: UUID | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_id: UUID
    amount: Decimal
    overpayment_amount: Decimal
    is_overpayment: bool
    admin_approved: bool
    payment_date: datetime
    payment_method: str
    bank_transfer_number: str | None = None
    attachment_url: str | None = None
    notes: str | None = None
    is_refund: bool
    refund_reference: str | None = None
    original_payment_id: UUID | None = None
    created_by: str | None = None
    approved_by: str | None = None
    created_at: datetime


class PaymentRecordResponse(BaseModel):
    payment: PaymentResponse
    new_status: InvoiceStatus
    paid_amount: Decimal
    overpayment_handled: bool
    credit_added: Decimal


class InvoiceRefundResponse(BaseModel):
    refund_payment: PaymentResponse
    new_paid_amount: Decimal
    new_status: InvoiceStatus
