"""PaymentSource repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.models.payment_source import PaymentSource
from app.schemas.payment_source import PaymentSourceCreate


class PaymentSourceRepository:
    """Repository for PaymentSource model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self, skip: int = 0, limit: int = 100, is_active: bool | None = None
    ) -> list[PaymentSource]:
        """Get all payment sources, newest first."""
        query = self.db.query(PaymentSource)
        if is_active is not None:
            query = query.filter(PaymentSource.is_active.is_(is_active))
        return query.order_by(PaymentSource.created_at.desc()).offset(skip).limit(limit).all()

    def get_by_id(self, source_id: UUID) -> PaymentSource | None:
        """Get a payment source by ID."""
        return self.db.query(PaymentSource).filter(PaymentSource.id == source_id).first()

    def get_for_update(self, source_id: UUID) -> PaymentSource | None:
        """Load a payment source with a row lock held until the transaction ends."""
        return (
            self.db.query(PaymentSource)
            .filter(PaymentSource.id == source_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def create(self, data: PaymentSourceCreate, initial_balance: Decimal) -> PaymentSource:
        """Insert a payment source with a zero running balance. Does not commit."""
        source = PaymentSource(
            name=data.name,
            description=data.description,
            account_type=data.account_type.value,
            currency=data.currency,
            initial_balance=initial_balance,
            current_balance=Decimal("0"),
            is_active=data.is_active,
        )
        self.db.add(source)
        self.db.flush()
        return source

    def set_balance(self, source: PaymentSource, new_balance: Decimal) -> PaymentSource:
        """Write the cached balance. Only the payment source ledger calls this."""
        source.current_balance = new_balance  # type: ignore[assignment]
        self.db.flush()
        return source

    def get_totals(self) -> tuple[int, int, Decimal]:
        """Count all and active sources and sum their running balances."""
        total, active, balance = self.db.query(
            func.count(PaymentSource.id),
            func.coalesce(func.sum(case((PaymentSource.is_active.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(PaymentSource.current_balance), 0),
        ).one()
        return int(total), int(active), Decimal(str(balance))
