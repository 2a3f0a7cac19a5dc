"""Reconciliation: recompute running balances from their ledgers and compare.

Stored balances (``Client.credit_balance``, ``PaymentSource.current_balance``,
``Invoice.paid_amount``) are caches. The checks here replay the append-only
history behind each one and report every disagreement found. Nothing is
repaired by guessing; the one repair offered, replaying overpayment credits,
re-runs the idempotent ``add_credit`` for payments that already exist.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import LedgerError, LedgerInconsistencyError, NotFoundError
from app.core.transaction import run_in_transaction
from app.models.client_credit_history import CreditEntryType
from app.repositories.client_repository import ClientRepository
from app.repositories.credit_history_repository import CreditHistoryRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.payment_repository import PaymentRepository
from app.repositories.payment_source_repository import PaymentSourceRepository
from app.repositories.payment_source_transaction_repository import (
    PaymentSourceTransactionRepository,
)
from app.services.credit_ledger import CreditLedgerService
from app.services.ledger_math import ZERO, net_paid_amount, signed_credit_delta, to_money
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class BalanceCheck:
    entity_type: str
    entity_id: UUID
    stored_balance: Decimal
    ledger_balance: Decimal
    entries_checked: int
    errors: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.errors


class ReconciliationService:
    def __init__(self, db: Session):
        self.db = db
        self.client_repo = ClientRepository(db)
        self.history_repo = CreditHistoryRepository(db)
        self.source_repo = PaymentSourceRepository(db)
        self.txn_repo = PaymentSourceTransactionRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)

    def verify_client_credit(self, client_id: UUID) -> BalanceCheck:
        """Replay a client's credit history and compare it with the stored balance."""
        client = self.client_repo.get_by_id(client_id)
        if not client:
            raise NotFoundError("client", client_id)

        errors: list[str] = []
        running = ZERO
        entries = self.history_repo.get_ledger(client_id)
        for entry in entries:
            previous = to_money(entry.previous_balance)
            new = to_money(entry.new_balance)
            if previous != running:
                errors.append(
                    f"Entry {entry.sequence}: previous balance {previous} "
                    f"does not follow running balance {running}"
                )
            expected = previous + signed_credit_delta(str(entry.type), entry.amount)
            if new != expected:
                errors.append(
                    f"Entry {entry.sequence}: new balance {new} != {previous} "
                    f"{entry.type} {to_money(entry.amount)}"
                )
            if new < 0:
                errors.append(f"Entry {entry.sequence}: balance went negative ({new})")
            running = running + signed_credit_delta(str(entry.type), entry.amount)

        stored = to_money(client.credit_balance)
        if stored != running:
            errors.append(f"Stored credit balance {stored} != ledger balance {running}")
        return BalanceCheck("client", client_id, stored, running, len(entries), errors)

    def verify_payment_source(self, source_id: UUID) -> BalanceCheck:
        """Replay a payment source's transactions and compare with its stored balance."""
        source = self.source_repo.get_by_id(source_id)
        if not source:
            raise NotFoundError("payment_source", source_id)

        errors: list[str] = []
        running = ZERO
        txns = self.txn_repo.get_ledger(source_id)
        for txn in txns:
            before = to_money(txn.balance_before)
            after = to_money(txn.balance_after)
            if before != running:
                errors.append(
                    f"Transaction {txn.sequence}: balance before {before} "
                    f"does not follow running balance {running}"
                )
            if after != before + to_money(txn.amount):
                errors.append(
                    f"Transaction {txn.sequence}: balance after {after} != "
                    f"{before} + {to_money(txn.amount)}"
                )
            running = running + to_money(txn.amount)

        stored = to_money(source.current_balance)
        if stored != running:
            errors.append(f"Stored balance {stored} != ledger balance {running}")
        return BalanceCheck("payment_source", source_id, stored, running, len(txns), errors)

    def verify_invoice(self, invoice_id: UUID) -> BalanceCheck:
        """Recompute an invoice's paid amount from its payments."""
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if not invoice:
            raise NotFoundError("invoice", invoice_id)

        payments = self.payment_repo.get_by_invoice_id(invoice_id)
        ledger_paid = net_paid_amount(payments)
        stored = to_money(invoice.paid_amount)
        amount = to_money(invoice.amount)
        errors: list[str] = []
        if stored != ledger_paid:
            errors.append(f"Stored paid amount {stored} != payment history {ledger_paid}")
        if ledger_paid < 0 or ledger_paid > amount:
            errors.append(f"Paid amount {ledger_paid} outside 0..{amount}")
        return BalanceCheck("invoice", invoice_id, stored, ledger_paid, len(payments), errors)

    def ensure_consistent(self, check: BalanceCheck) -> BalanceCheck:
        """Raise ``LedgerInconsistencyError`` (and alert) if the check failed."""
        if check.consistent:
            return check
        logger.error(
            "Reconciliation failed for %s %s: %s",
            check.entity_type,
            check.entity_id,
            "; ".join(check.errors),
        )
        NotificationService(self.db).alert_ledger(
            entity_type=check.entity_type,
            entity_id=check.entity_id,
            message="; ".join(check.errors),
        )
        raise LedgerInconsistencyError(
            check.entity_type,
            check.entity_id,
            "Stored balance does not match ledger history",
            stored_balance=check.stored_balance,
            ledger_balance=check.ledger_balance,
            errors=check.errors,
        )

    def replay_missing_overpayment_credits(self) -> list[UUID]:
        """Add client credit for approved overpayments that never got it.

        Returns the ids of the payments repaired. Payments whose credit still
        cannot be written are logged and left for the next run.
        """
        credit_ledger = CreditLedgerService(self.db)
        repaired: list[UUID] = []
        for payment in self.payment_repo.get_approved_overpayments():
            payment_id: UUID = payment.id  # type: ignore[assignment]
            if self.history_repo.get_for_payment(payment_id, CreditEntryType.CREDIT_ADDED):
                continue
            invoice = self.invoice_repo.get_by_id(payment.invoice_id)  # type: ignore[arg-type]
            if invoice is None:
                logger.error("Payment %s refers to a missing invoice", payment_id)
                continue
            client_id: UUID = invoice.client_id  # type: ignore[assignment]
            overpayment = to_money(payment.overpayment_amount)
            invoice_number = invoice.invoice_number
            try:
                run_in_transaction(
                    self.db,
                    lambda: credit_ledger.add_credit(
                        client_id,
                        overpayment,
                        description=f"Overpayment on invoice {invoice_number}",
                        related_invoice_id=payment.invoice_id,  # type: ignore[arg-type]
                        related_payment_id=payment_id,
                        notes="Replayed by reconciliation",
                    ),
                    entity_type="client",
                    entity_id=client_id,
                )
            except LedgerError:
                logger.exception("Could not replay overpayment credit for payment %s", payment_id)
                continue
            logger.info(
                "Replayed overpayment credit of %s for payment %s to client %s",
                overpayment,
                payment_id,
                client_id,
            )
            repaired.append(payment_id)
        return repaired
