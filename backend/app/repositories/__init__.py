from app.repositories.audit_log_repository import AuditLogRepository
from app.repositories.client_repository import ClientRepository
from app.repositories.credit_history_repository import CreditHistoryRepository
from app.repositories.expense_payment_repository import ExpensePaymentRepository
from app.repositories.expense_repository import ExpenseRepository
from app.repositories.invoice_repository import InvoiceRepository
from app.repositories.notification_repository import NotificationRepository
from app.repositories.payment_repository import PaymentRepository
from app.repositories.payment_source_repository import PaymentSourceRepository
from app.repositories.payment_source_transaction_repository import (
    PaymentSourceTransactionRepository,
)

__all__ = [
    "AuditLogRepository",
    "ClientRepository",
    "CreditHistoryRepository",
    "ExpensePaymentRepository",
    "ExpenseRepository",
    "InvoiceRepository",
    "NotificationRepository",
    "PaymentRepository",
    "PaymentSourceRepository",
    "PaymentSourceTransactionRepository",
]
