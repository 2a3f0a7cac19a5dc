from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BalanceCheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_type: str
    entity_id: UUID
    stored_balance: Decimal
    ledger_balance: Decimal
    entries_checked: int
    consistent: bool
    errors: list[str]


class OverpaymentReplayResponse(BaseModel):
    repaired_payment_ids: list[UUID]
