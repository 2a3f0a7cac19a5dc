"""Client model with its redundant running credit balance."""

from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String, Text, func

from app.core.database import Base
from app.models.shared import MONEY, UUIDType, generate_uuid


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class Client(Base):
    """Client model.

    ``credit_balance`` is a cache of the client's credit history and is only
    written together with a ``ClientCreditHistory`` row.
    """

    __tablename__ = "clients"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default=ClientStatus.ACTIVE.value)
    credit_balance = Column(MONEY, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
