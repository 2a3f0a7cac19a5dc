"""Notification model for in-app notifications and ledger alerts."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base):
    """Notification model - stores in-app notifications for admin users."""

    __tablename__ = "notifications"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    category = Column(String(50), nullable=False, index=True)
    priority = Column(String(20), nullable=False, default=NotificationPriority.MEDIUM.value)
    title = Column(String(255), nullable=False)
    message = Column(String(1000), nullable=False)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(UUIDType, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
