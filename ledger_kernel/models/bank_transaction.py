"""
Module: ledger_kernel.models.bank_transaction
Responsibility: ORM persistence for imported bank statement lines awaiting
    reconciliation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Only PENDING or UNMATCHED lines may be reconciled; once MATCHED a line
      stays MATCHED (ReconciliationService checks before writing).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class BankTransactionStatus(str, Enum):
    PENDING = "PENDING"
    MATCHED = "MATCHED"
    UNMATCHED = "UNMATCHED"


# States from which a line can still be reconciled
RECONCILABLE_STATUSES: frozenset[BankTransactionStatus] = frozenset(
    {BankTransactionStatus.PENDING, BankTransactionStatus.UNMATCHED}
)


class BankTransaction(TrackedBase):
    """One line of an imported bank statement."""

    __tablename__ = "bank_transactions"

    __table_args__ = (
        Index("idx_bank_txn_status", "status"),
        Index("idx_bank_txn_date", "transaction_date"),
    )

    # Identifier of the line on the bank's statement
    statement_reference: Mapped[str] = mapped_column(String(100), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Free text as supplied by the bank (payer memo)
    reference: Mapped[str | None] = mapped_column(String(500), nullable=True)

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[BankTransactionStatus] = mapped_column(
        String(20), default=BankTransactionStatus.PENDING.value, nullable=False
    )

    matched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    matched_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<BankTransaction {self.statement_reference} {self.amount} {self.status}>"
