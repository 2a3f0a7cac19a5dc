"""Client credit ledger.

Owns ``Client.credit_balance`` and its append-only ``ClientCreditHistory``.
The balance write and the history append always happen in the same
transaction, so a reader never sees one without the other.

The ``add_credit`` / ``spend_credit`` / ``refund_credit`` primitives do not
commit: they run inside a transaction opened by the calling service
(``run_in_transaction``). ``refund_client_credit`` is the standalone entry
point that opens its own.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import InsufficientCreditError, LedgerInconsistencyError, NotFoundError
from app.models.client import Client
from app.models.client_credit_history import ClientCreditHistory, CreditEntryType
from app.repositories.client_repository import ClientRepository
from app.repositories.credit_history_repository import CreditHistoryRepository
from app.services.audit_service import AuditService
from app.services.ledger_math import ZERO, require_positive, signed_credit_delta, to_money
from app.services.ledger_ops import run_ledger_operation
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

SPEND_TYPES = frozenset({CreditEntryType.CREDIT_USED, CreditEntryType.CREDIT_APPLIED})


@dataclass
class CreditSummary:
    """A client's current credit balance and history, newest entry first."""

    current_balance: Decimal
    history: list[ClientCreditHistory]


class CreditLedgerService:
    """Service owning the client credit balance."""

    def __init__(self, db: Session):
        self.db = db
        self.client_repo = ClientRepository(db)
        self.history_repo = CreditHistoryRepository(db)
        self.audit = AuditService(db)

    def get_credit(self, client_id: UUID) -> CreditSummary:
        client = self.client_repo.get_by_id(client_id)
        if not client:
            raise NotFoundError("client", client_id)
        return CreditSummary(
            current_balance=to_money(client.credit_balance),
            history=self.history_repo.get_by_client_id(client_id),
        )

    def _lock_client(self, client_id: UUID) -> tuple[Client, Decimal, int]:
        """Lock the client row and check the cached balance against the ledger tail.

        Returns the client, its current balance and the next history sequence.
        """
        client = self.client_repo.get_for_update(client_id)
        if not client:
            raise NotFoundError("client", client_id)

        balance = to_money(client.credit_balance)
        last = self.history_repo.get_last(client_id)
        ledger_balance = to_money(last.new_balance) if last else ZERO
        if balance != ledger_balance:
            logger.error(
                "Client %s credit balance %s disagrees with ledger tail %s",
                client_id,
                balance,
                ledger_balance,
            )
            raise LedgerInconsistencyError(
                "client",
                client_id,
                "Client credit balance does not match its credit history",
                stored_balance=balance,
                ledger_balance=ledger_balance,
            )
        next_sequence = (last.sequence + 1) if last else 1
        return client, balance, next_sequence

    def _append(
        self,
        client: Client,
        sequence: int,
        entry_type: CreditEntryType,
        amount: Decimal,
        previous_balance: Decimal,
        *,
        description: str,
        related_invoice_id: UUID | None = None,
        related_payment_id: UUID | None = None,
        notes: str | None = None,
        refund_method: str | None = None,
        refund_reference: str | None = None,
        actor_id: str | None = None,
    ) -> Decimal:
        new_balance = to_money(previous_balance + signed_credit_delta(entry_type, amount))
        self.history_repo.create(
            client_id=client.id,  # type: ignore[arg-type]
            sequence=sequence,
            entry_type=entry_type,
            amount=amount,
            previous_balance=previous_balance,
            new_balance=new_balance,
            description=description,
            related_invoice_id=related_invoice_id,
            related_payment_id=related_payment_id,
            notes=notes,
            refund_method=refund_method,
            refund_reference=refund_reference,
            created_by=actor_id,
        )
        self.client_repo.set_credit_balance(client, new_balance)
        self.audit.log_update(
            "client",
            client.id,  # type: ignore[arg-type]
            old_data={"credit_balance": previous_balance},
            new_data={"credit_balance": new_balance},
            actor_id=actor_id,
            action=entry_type.value,
        )
        logger.info(
            "Client %s %s %s: balance %s -> %s",
            client.id,
            entry_type.value,
            amount,
            previous_balance,
            new_balance,
        )
        return new_balance

    def add_credit(
        self,
        client_id: UUID,
        amount: Decimal,
        *,
        description: str,
        related_invoice_id: UUID | None = None,
        related_payment_id: UUID | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Decimal:
        """Add credit to a client's balance. Returns the new balance.

        Idempotent per ``related_payment_id``: if that payment already has a
        ``credit_added`` entry, nothing is written and the current balance is
        returned.
        """
        amount = require_positive(amount)
        client, balance, sequence = self._lock_client(client_id)

        if related_payment_id is not None:
            existing = self.history_repo.get_for_payment(
                related_payment_id, CreditEntryType.CREDIT_ADDED
            )
            if existing is not None:
                logger.info(
                    "Credit for payment %s already recorded as entry %s",
                    related_payment_id,
                    existing.id,
                )
                return balance

        return self._append(
            client,
            sequence,
            CreditEntryType.CREDIT_ADDED,
            amount,
            balance,
            description=description,
            related_invoice_id=related_invoice_id,
            related_payment_id=related_payment_id,
            notes=notes,
            actor_id=actor_id,
        )

    def spend_credit(
        self,
        client_id: UUID,
        amount: Decimal,
        entry_type: CreditEntryType = CreditEntryType.CREDIT_USED,
        *,
        description: str,
        related_invoice_id: UUID | None = None,
        related_payment_id: UUID | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Decimal:
        """Spend credit against an invoice. Returns the new balance."""
        if entry_type not in SPEND_TYPES:
            raise ValueError(f"Not a spend entry type: {entry_type}")
        return self._debit(
            client_id,
            amount,
            entry_type,
            description=description,
            related_invoice_id=related_invoice_id,
            related_payment_id=related_payment_id,
            notes=notes,
            actor_id=actor_id,
        )

    def refund_credit(
        self,
        client_id: UUID,
        amount: Decimal,
        *,
        refund_method: str,
        refund_reference: str | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Decimal:
        """Pay credit back to the client outside the system. Returns the new balance."""
        return self._debit(
            client_id,
            amount,
            CreditEntryType.CREDIT_REFUNDED,
            description=f"Credit refunded via {refund_method}",
            notes=notes,
            refund_method=refund_method,
            refund_reference=refund_reference,
            actor_id=actor_id,
        )

    def _debit(
        self,
        client_id: UUID,
        amount: Decimal,
        entry_type: CreditEntryType,
        **entry: str | UUID | None,
    ) -> Decimal:
        amount = require_positive(amount)
        client, balance, sequence = self._lock_client(client_id)
        if amount > balance:
            logger.info(
                "Rejected %s of %s for client %s: only %s available",
                entry_type.value,
                amount,
                client_id,
                balance,
            )
            raise InsufficientCreditError(client_id, balance, amount)
        return self._append(client, sequence, entry_type, amount, balance, **entry)  # type: ignore[arg-type]

    def refund_client_credit(
        self,
        client_id: UUID,
        refund_amount: Decimal,
        refund_method: str,
        refund_reference: str | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Decimal:
        """Refund credit to a client in its own transaction. Returns the new balance."""
        refund_amount = require_positive(refund_amount, "refund_amount")
        new_balance = run_ledger_operation(
            self.db,
            lambda: self.refund_credit(
                client_id,
                refund_amount,
                refund_method=refund_method,
                refund_reference=refund_reference,
                notes=notes,
                actor_id=actor_id,
            ),
            entity_type="client",
            entity_id=client_id,
        )
        NotificationService(self.db).notify_credit_refunded(
            client_id=client_id, amount=refund_amount
        )
        return new_balance
