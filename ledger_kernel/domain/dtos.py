"""
DTOs -- Immutable data structures crossing the service boundary.

Responsibility:
    Inputs to the posting engine and the read-only results returned by
    services and selectors.  Callers never receive live ORM objects from
    the reporting operations defined here.

Architecture position:
    Kernel > Domain -- pure, zero I/O, no ORM dependencies.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


@dataclass(frozen=True)
class LedgerEntryInput:
    """
    One requested ledger line.

    amount is validated by LedgerService (positive, finite) rather than
    here, so an invalid line surfaces as a typed posting error.
    """

    account_code: str
    entry_type: str
    amount: Decimal | int | str | float
    description: str
    customer_id: UUID | None = None
    invoice_id: UUID | None = None
    payment_id: UUID | None = None


class ReconcileStatus(str, Enum):
    """Per-line outcome of a batch auto-reconciliation run."""

    MATCHED = "MATCHED"
    UNMATCHED = "UNMATCHED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ReconcileDetail:
    bank_transaction_id: UUID
    statement_reference: str
    status: ReconcileStatus
    confidence: int = 0
    reason: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class AutoReconcileSummary:
    """
    Result of AutoReconciler.auto_reconcile_all().

    Guarantees:
        matched + unmatched + failed == total == len(details)
    """

    total: int
    matched: int
    unmatched: int
    failed: int
    details: tuple[ReconcileDetail, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StatusChange:
    """Outcome of recalculating one invoice from its confirmed payments."""

    invoice_id: UUID
    invoice_number: str
    old_status: str
    new_status: str
    paid_amount: Decimal
    balance_amount: Decimal

    @property
    def changed(self) -> bool:
        return self.old_status != self.new_status


@dataclass(frozen=True)
class InvoiceSummary:
    invoice_id: UUID
    invoice_number: str
    status: str
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    percentage_paid: Decimal
    payment_count: int
    last_payment_date: date | None
    is_overdue: bool
    days_overdue: int


@dataclass(frozen=True)
class TrialBalanceRow:
    account_code: str
    account_name: str
    account_type: str
    debit_total: Decimal
    credit_total: Decimal
    current_balance: Decimal


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    code: str
    name: str
    account_type: str
    current_balance: Decimal
    is_active: bool


@dataclass(frozen=True)
class LedgerEntryRecord:
    """Read-side view of one persisted ledger line."""

    id: UUID
    transaction_id: str
    account_code: str
    entry_type: str
    amount: Decimal
    entry_date: date
    description: str
    is_reversed: bool
    reversal_entry_id: UUID | None = None
    customer_id: UUID | None = None
    invoice_id: UUID | None = None
    payment_id: UUID | None = None


@dataclass(frozen=True)
class PostingAccounts:
    """
    Account codes the named posting helpers write to.

    Built from configuration by ledger_config.bridges; the defaults are
    the standard chart.
    """

    bank: str = "1010"
    accounts_receivable: str = "1200"
    sales_revenue: str = "4000"


@dataclass(frozen=True)
class PaymentRecord:
    """Read-side view of one payment against an invoice."""

    id: UUID
    invoice_id: UUID | None
    amount: Decimal
    payment_date: date
    payment_method: str
    status: str
    reference: str | None = None
    is_reconciled: bool = False
    reconciled_by_id: UUID | None = None
