"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.bank_transaction import (
    RECONCILABLE_STATUSES,
    BankTransaction,
    BankTransactionStatus,
)
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.invoice import OPEN_INVOICE_STATUSES, Invoice, InvoiceStatus
from ledger_kernel.models.ledger import EntryType, LedgerEntry
from ledger_kernel.models.payment import Payment, PaymentMethod, PaymentStatus
from ledger_kernel.models.reconciliation_log import (
    ReconciliationAction,
    ReconciliationLog,
)

__all__ = [
    "Account",
    "AccountType",
    "BankTransaction",
    "BankTransactionStatus",
    "Customer",
    "EntryType",
    "Invoice",
    "InvoiceStatus",
    "LedgerEntry",
    "OPEN_INVOICE_STATUSES",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "RECONCILABLE_STATUSES",
    "ReconciliationAction",
    "ReconciliationLog",
]
