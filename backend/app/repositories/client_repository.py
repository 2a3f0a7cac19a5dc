from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.client import Client
from app.schemas.client import ClientCreate


class ClientRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100) -> list[Client]:
        return (
            self.db.query(Client).order_by(Client.created_at.desc()).offset(skip).limit(limit).all()
        )

    def get_by_id(self, client_id: UUID) -> Client | None:
        return self.db.query(Client).filter(Client.id == client_id).first()

    def get_for_update(self, client_id: UUID) -> Client | None:
        """Load a client with a row lock held until the current transaction ends."""
        return (
            self.db.query(Client)
            .filter(Client.id == client_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def create(self, data: ClientCreate) -> Client:
        values = data.model_dump()
        values["status"] = data.status.value
        client = Client(**values, credit_balance=Decimal("0"))
        self.db.add(client)
        self.db.commit()
        self.db.refresh(client)
        return client

    def set_credit_balance(self, client: Client, new_balance: Decimal) -> Client:
        """Write the cached credit balance. Only the credit ledger calls this."""
        client.credit_balance = new_balance  # type: ignore[assignment]
        self.db.flush()
        return client
