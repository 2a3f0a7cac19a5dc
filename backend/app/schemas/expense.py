"""Expense schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.expense import ExpenseFrequency, ExpenseType
from app.schemas.payment_source import PaymentSourceTransactionResponse


class ExpenseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    amount: Decimal = Field(gt=0)
    category: str = Field(..., min_length=1, max_length=100)
    type: ExpenseType = ExpenseType.VARIABLE
    frequency: ExpenseFrequency | None = None
    expense_date: datetime
    due_date: datetime | None = None
    payment_method: str = Field(..., min_length=1, max_length=30)
    payment_reference: str | None = Field(default=None, max_length=255)
    attachment_url: str = Field(..., min_length=1, max_length=1024)
    attachment_type: str = Field(..., min_length=1, max_length=30)
    notes: str | None = None
    is_recurring: bool = False
    payment_source_id: UUID | None = None
    related_client_id: UUID | None = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    amount: Decimal
    category: str
    type: str
    frequency: str | None = None
    expense_date: datetime
    due_date: datetime | None = None
    next_due_date: datetime | None = None
    paid_date: datetime | None = None
    payment_method: str
    payment_reference: str | None = None
    status: str
    attachment_url: str
    attachment_type: str
    notes: str | None = None
    is_recurring: bool
    payment_source_id: UUID | None = None
    related_client_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class ExpensePayRequest(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)
    payment_method: str = Field(..., min_length=1, max_length=30)
    payment_reference: str | None = Field(default=None, max_length=255)
    # Checked by the settlement service so a blank value gets the typed failure
    attachment_url: str = Field(default="", max_length=1024)
    notes: str | None = None


class ExpensePaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    expense_id: UUID
    amount: Decimal
    payment_date: datetime
    payment_method: str
    payment_reference: str | None = None
    attachment_url: str
    notes: str | None = None
    payment_source_transaction_id: UUID | None = None
    created_by: str | None = None
    created_at: datetime


class ExpenseSettlementResponse(BaseModel):
    expense: ExpenseResponse
    payment: ExpensePaymentResponse
    transaction: PaymentSourceTransactionResponse | None = None
