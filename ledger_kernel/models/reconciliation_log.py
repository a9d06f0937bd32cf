"""
Module: ledger_kernel.models.reconciliation_log
Responsibility: Append-only audit trail of reconciliation decisions.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are never updated or deleted (db/immutability.py).
    - The acting user is recorded in created_by_id.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class ReconciliationAction(str, Enum):
    AUTO_MATCHED = "AUTO_MATCHED"
    MANUAL_MATCHED = "MANUAL_MATCHED"
    UNMATCHED = "UNMATCHED"


class ReconciliationLog(TrackedBase):
    """One reconciliation decision taken on a bank line."""

    __tablename__ = "reconciliation_logs"

    __table_args__ = (Index("idx_recon_log_bank_txn", "bank_transaction_id"),)

    bank_transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("bank_transactions.id"), nullable=False
    )

    action: Mapped[ReconciliationAction] = mapped_column(String(20), nullable=False)

    matched_customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), nullable=True
    )
    matched_invoice_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    matched_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9), nullable=True
    )

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ReconciliationLog {self.action} {self.bank_transaction_id}>"
