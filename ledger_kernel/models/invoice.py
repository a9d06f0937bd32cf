"""
Module: ledger_kernel.models.invoice
Responsibility: ORM persistence for customer invoices and their payment
    progress.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - invoice_number is globally unique (uq_invoice_number).
    - paid_amount + balance_amount == total_amount.  The balance is never
      clamped, so an overpayment shows as a negative balance.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.models.customer import Customer


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""

    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


# Invoices that can still receive a payment
OPEN_INVOICE_STATUSES: frozenset[InvoiceStatus] = frozenset(
    {InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE}
)


class Invoice(TrackedBase):
    """An amount billed to a customer."""

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        Index("idx_invoice_customer", "customer_id"),
        Index("idx_invoice_status", "status"),
    )

    # e.g. "INV-2024-0001"
    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False)

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("customers.id"),
        nullable=False,
    )

    total_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        String(20), default=InvoiceStatus.DRAFT.value, nullable=False
    )

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    customer: Mapped[Customer] = relationship()

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} {self.status} {self.balance_amount}>"
