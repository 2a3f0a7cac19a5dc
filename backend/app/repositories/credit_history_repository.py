"""ClientCreditHistory repository. Rows are appended, never changed."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.client_credit_history import ClientCreditHistory, CreditEntryType


class CreditHistoryRepository:
    """Repository for ClientCreditHistory model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_client_id(
        self, client_id: UUID, skip: int = 0, limit: int | None = None
    ) -> list[ClientCreditHistory]:
        """Get a client's credit history, newest first."""
        query = (
            self.db.query(ClientCreditHistory)
            .filter(ClientCreditHistory.client_id == client_id)
            .order_by(ClientCreditHistory.sequence.desc())
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_ledger(self, client_id: UUID) -> list[ClientCreditHistory]:
        """Get a client's credit history in append order."""
        return (
            self.db.query(ClientCreditHistory)
            .filter(ClientCreditHistory.client_id == client_id)
            .order_by(ClientCreditHistory.sequence.asc())
            .all()
        )

    def get_last(self, client_id: UUID) -> ClientCreditHistory | None:
        return (
            self.db.query(ClientCreditHistory)
            .filter(ClientCreditHistory.client_id == client_id)
            .order_by(ClientCreditHistory.sequence.desc())
            .first()
        )

    def get_for_payment(
        self, payment_id: UUID, entry_type: CreditEntryType
    ) -> ClientCreditHistory | None:
        return (
            self.db.query(ClientCreditHistory)
            .filter(
                ClientCreditHistory.related_payment_id == payment_id,
                ClientCreditHistory.type == entry_type.value,
            )
            .first()
        )

    def create(
        self,
        *,
        client_id: UUID,
        sequence: int,
        entry_type: CreditEntryType,
        amount: Decimal,
        previous_balance: Decimal,
        new_balance: Decimal,
        description: str,
        related_invoice_id: UUID | None = None,
        related_payment_id: UUID | None = None,
        notes: str | None = None,
        refund_method: str | None = None,
        refund_reference: str | None = None,
        created_by: str | None = None,
    ) -> ClientCreditHistory:
        """Append a history entry. Does not commit."""
        entry = ClientCreditHistory(
            client_id=client_id,
            sequence=sequence,
            type=entry_type.value,
            amount=amount,
            previous_balance=previous_balance,
            new_balance=new_balance,
            description=description,
            related_invoice_id=related_invoice_id,
            related_payment_id=related_payment_id,
            notes=notes,
            refund_method=refund_method,
            refund_reference=refund_reference,
            created_by=created_by,
        )
        self.db.add(entry)
        self.db.flush()
        return entry
