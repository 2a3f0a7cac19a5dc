from app.models.audit_log import AuditLog
from app.models.client import Client, ClientStatus
from app.models.client_credit_history import ClientCreditHistory, CreditEntryType
from app.models.expense import Expense, ExpenseFrequency, ExpenseStatus, ExpenseType
from app.models.expense_payment import ExpensePayment
from app.models.invoice import INVOICE_TRANSITIONS, Invoice, InvoiceStatus, ensure_transition
from app.models.notification import Notification, NotificationPriority
from app.models.payment import Payment, PaymentMethod
from app.models.payment_source import AccountType, PaymentSource
from app.models.payment_source_transaction import (
    PaymentSourceTransaction,
    SourceReferenceType,
    SourceTransactionType,
)

__all__ = [
    "AccountType",
    "AuditLog",
    "Client",
    "ClientCreditHistory",
    "ClientStatus",
    "CreditEntryType",
    "Expense",
    "ExpenseFrequency",
    "ExpensePayment",
    "ExpenseStatus",
    "ExpenseType",
    "INVOICE_TRANSITIONS",
    "Invoice",
    "InvoiceStatus",
    "Notification",
    "NotificationPriority",
    "Payment",
    "PaymentMethod",
    "PaymentSource",
    "PaymentSourceTransaction",
    "SourceReferenceType",
    "SourceTransactionType",
    "ensure_transition",
]
