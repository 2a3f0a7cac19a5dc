from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class InvoiceCreate(BaseModel):
    """Either ``amount`` or ``subtotal`` (with optional flat rates) must be given."""

    client_id: UUID
    title: str = Field(default="Invoice", min_length=1, max_length=255)
    description: str | None = None
    subtotal: Decimal | None = Field(default=None, ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    discount_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    amount: Decimal | None = Field(default=None, gt=0)
    due_date: datetime | None = None
    notes: str | None = None
    payment_terms: str | None = None

    @model_validator(mode="after")
    def check_amount_source(self) -> "InvoiceCreate":
        if self.amount is None and self.subtotal is None:
            raise ValueError("Either amount or subtotal is required")
        return self


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    client_id: UUID
    title: str
    description: str | None = None
    status: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    amount: Decimal
    paid_amount: Decimal
    invoice_date: datetime | None = None
    due_date: datetime | None = None
    paid_date: datetime | None = None
    notes: str | None = None
    payment_terms: str | None = None
    created_at: datetime
    updated_at: datetime
