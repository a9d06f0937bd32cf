"""
Module: ledger_kernel.models.ledger
Responsibility: ORM persistence for ledger entries -- the append-only record
    of every debit and credit posted to the books.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - For one transaction_id, sum(DEBIT amounts) == sum(CREDIT amounts)
      (checked by LedgerService before any write; verified after the fact
      by LedgerSelector.unbalanced_transactions()).
    - amount is always positive; entry_type carries the direction.
    - Rows are never deleted and never updated, except for the one-way
      reversal flag (is_reversed False -> True with reversal_entry_id set).
      Enforced by db/immutability.py.

Audit relevance:
    Account balances are derivable purely by replaying these rows, which is
    what makes the running balance on Account checkable.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class EntryType(str, Enum):
    """Direction of a ledger line."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    @property
    def opposite(self) -> "EntryType":
        return EntryType.CREDIT if self is EntryType.DEBIT else EntryType.DEBIT


class LedgerEntry(TrackedBase):
    """
    One immutable debit or credit line within a balanced transaction group.

    Non-goals:
        - This model does not enforce balance; LedgerService does.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_transaction", "transaction_id"),
        Index("idx_ledger_account", "account_id"),
        Index("idx_ledger_payment", "payment_id"),
        Index("idx_ledger_invoice", "invoice_id"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    # Groups the balanced set of lines belonging to one posting
    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False)

    entry_type: Mapped[EntryType] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    customer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    invoice_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    payment_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    is_reversed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Points at the offsetting line in the reversal transaction
    reversal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("ledger_entries.id"),
        nullable=True,
    )

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.transaction_id} {self.entry_type} "
            f"{self.amount}>"
        )
