"""PaymentSource model for cash/bank accounts that fund expenses."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid


class AccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    WALLET = "wallet"
    CREDIT_CARD = "credit_card"


class PaymentSource(Base):
    """PaymentSource model.

    ``current_balance`` is a cache of the source's transaction history. Only
    credit-card sources are expected to run negative.
    """

    __tablename__ = "payment_sources"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(String(1024), nullable=True)
    account_type = Column(String(20), nullable=False, default=AccountType.BANK.value)
    currency = Column(String(3), nullable=False, default="EGP")
    initial_balance = Column(MONEY, nullable=False, default=0)
    current_balance = Column(MONEY, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
