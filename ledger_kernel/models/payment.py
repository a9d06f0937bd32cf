"""
Module: ledger_kernel.models.payment
Responsibility: ORM persistence for customer payments, including the
    negative-amount rows that record refunds.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    CARD = "CARD"


class Payment(TrackedBase):
    """
    Money received from (or, when negative, returned to) a customer.

    Contract:
        Payments created by reconciliation are CONFIRMED and reconciled
        with bank_transaction_id pointing at the matched bank line.
        A refund is a separate REFUNDED row with a negative amount; the
        refunded original is flipped to REFUNDED as well.
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payment_customer", "customer_id"),
        Index("idx_payment_invoice", "invoice_id"),
        Index("idx_payment_bank_txn", "bank_transaction_id"),
    )

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=False
    )
    invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("invoices.id"), nullable=True
    )
    bank_transaction_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("bank_transactions.id"), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment_method: Mapped[PaymentMethod] = mapped_column(
        String(20), default=PaymentMethod.BANK_TRANSFER.value, nullable=False
    )

    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[PaymentStatus] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, nullable=False
    )

    is_reconciled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reconciled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reconciled_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment {self.reference} {self.amount} {self.status}>"
