"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every ledger entry -- together with each account's running balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is globally unique (uq_account_code).
    - current_balance is mutated only by LedgerService, inside the same
      transaction as the ledger entries that justify the change.
    - Accounts are never deleted (db/immutability.py blocks DELETE).

Failure modes:
    - AccountNotFoundError when a posting references a non-existent code.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class Account(TrackedBase):
    """
    Chart of accounts entry with its running balance.

    Contract:
        Created once at system setup.  The sign convention of
        current_balance follows the account type: ASSET and EXPENSE
        accounts grow with debits, LIABILITY, EQUITY and REVENUE accounts
        grow with credits (see domain/balance_rules.py).
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
    )

    # Human-assigned code, e.g. "1010"
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"
