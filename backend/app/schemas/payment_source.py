"""Payment source schemas."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.payment_source import AccountType


class PaymentSourceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1024)
    account_type: AccountType = AccountType.BANK
    currency: str = Field(default="EGP", min_length=3, max_length=3)
    initial_balance: Decimal = Decimal("0")
    is_active: bool = True


class PaymentSourceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    account_type: str
    currency: str
    initial_balance: Decimal
    current_balance: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PaymentSourceTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_source_id: UUID
    sequence: int
    type: str
    amount: Decimal
    description: str | None = None
    reference_id: UUID | None = None
    reference_type: str | None = None
    balance_before: Decimal
    balance_after: Decimal
    created_by: str | None = None
    created_at: datetime


class BalanceAdjustmentRequest(BaseModel):
    amount: Decimal
    description: str = Field(..., min_length=1, max_length=1024)
    type: Literal["adjustment", "income"] = "adjustment"


class BalanceAdjustmentResponse(BaseModel):
    updated_source: PaymentSourceResponse
    transaction: PaymentSourceTransactionResponse


class StatsPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class SourceExpenseTotal(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_source_id: UUID
    total_spent: Decimal
    expense_count: int


class PaymentSourceStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_sources: int
    active_sources: int
    total_balance: Decimal
    expenses_by_source: list[SourceExpenseTotal]
    period: StatsPeriod
    start_date: datetime
    end_date: datetime
