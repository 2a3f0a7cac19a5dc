"""Client credit schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.payment import PaymentMethod
from app.schemas.payment import PaymentResponse


class CreditHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    sequence: int
    type: str
    amount: Decimal
    related_invoice_id: UUID | None = None
    related_payment_id: UUID | None = None
    description: str
    notes: str | None = None
    refund_method: str | None = None
    refund_reference: str | None = None
    previous_balance: Decimal
    new_balance: Decimal
    created_by: str | None = None
    created_at: datetime


class ClientCreditResponse(BaseModel):
    current_balance: Decimal
    history: list[CreditHistoryResponse]


class ApplyCreditRequest(BaseModel):
    client_id: UUID
    credit_amount: Decimal = Field(gt=0)


class ApplyCreditResponse(BaseModel):
    payment: PaymentResponse
    credit_used: Decimal
    remaining_credit: Decimal


class CreditRefundRequest(BaseModel):
    refund_amount: Decimal = Field(gt=0)
    refund_method: PaymentMethod
    refund_reference: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class CreditRefundResponse(BaseModel):
    new_credit_balance: Decimal
