"""
Ledger configuration schema.

Frozen dataclasses for the values a deployment may change without a code
change: the chart-of-accounts codes the posting helpers write to, and the
bank line matching policy.  The loader parses ``sets/<name>.yaml`` into
these types; ``bridges.py`` turns them into kernel inputs.

Every value is validated in ``__post_init__`` so a bad configuration set
fails at load time, not at the first posting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ledger_kernel.models.invoice import OPEN_INVOICE_STATUSES, InvoiceStatus
from ledger_kernel.models.payment import PaymentMethod

# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerAccountCodes:
    """
    Standard chart codes.

    bank, accounts_receivable and sales_revenue are the accounts the named
    business postings write to (see bridges.posting_accounts).
    cash_clearing, owners_equity and service_revenue are chart metadata
    only: no posting helper writes to them, but they take part in the
    distinct-code check so a set cannot map two roles onto one account.
    """

    bank: str = "1010"
    cash_clearing: str = "1300"
    accounts_receivable: str = "1200"
    owners_equity: str = "3000"
    sales_revenue: str = "4000"
    service_revenue: str = "4100"

    def __post_init__(self) -> None:
        codes = self.as_dict()
        for role, code in codes.items():
            if not isinstance(code, str) or not code.strip():
                raise ValueError(f"Account code for '{role}' must be a non-empty string")
        if len(set(codes.values())) != len(codes):
            raise ValueError(f"Account codes must be distinct: {codes}")

    def as_dict(self) -> dict[str, str]:
        return {
            "bank": self.bank,
            "cash_clearing": self.cash_clearing,
            "accounts_receivable": self.accounts_receivable,
            "owners_equity": self.owners_equity,
            "sales_revenue": self.sales_revenue,
            "service_revenue": self.service_revenue,
        }


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchingPolicy:
    """Knobs for the bank line matcher and the batch reconciler."""

    amount_tolerance: Decimal = Decimal("0.01")
    auto_apply_threshold: int = 80
    open_invoice_statuses: tuple[str, ...] = field(
        default_factory=lambda: tuple(sorted(s.value for s in OPEN_INVOICE_STATUSES))
    )

    def __post_init__(self) -> None:
        if self.amount_tolerance < 0 or self.amount_tolerance >= 1:
            raise ValueError(
                f"amount_tolerance must be in [0, 1), got {self.amount_tolerance}"
            )
        if not 0 <= self.auto_apply_threshold <= 100:
            raise ValueError(
                f"auto_apply_threshold must be in [0, 100], got {self.auto_apply_threshold}"
            )
        if not self.open_invoice_statuses:
            raise ValueError("open_invoice_statuses must not be empty")
        for status in self.open_invoice_statuses:
            InvoiceStatus(status)
        if InvoiceStatus.PAID.value in self.open_invoice_statuses:
            raise ValueError("PAID invoices cannot be open for matching")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """One loaded configuration set."""

    config_id: str
    version: int
    accounts: LedgerAccountCodes = field(default_factory=LedgerAccountCodes)
    matching: MatchingPolicy = field(default_factory=MatchingPolicy)
    default_payment_method: str = PaymentMethod.BANK_TRANSFER.value
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id is required")
        if self.version < 1:
            raise ValueError(f"version must be >= 1, got {self.version}")
        PaymentMethod(self.default_payment_method)
