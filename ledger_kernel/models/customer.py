"""
Module: ledger_kernel.models.customer
Responsibility: ORM persistence for customers and their receivable totals.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - customer_code is globally unique (uq_customer_code).
    - current_balance == total_outstanding - total_paid after every
      reconciliation or refund.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Customer(TrackedBase):
    """A customer that invoices are raised against."""

    __tablename__ = "customers"

    __table_args__ = (UniqueConstraint("customer_code", name="uq_customer_code"),)

    # e.g. "CUST-0001"
    customer_code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    total_outstanding: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )
    total_paid: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), default=Decimal("0"), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Customer {self.customer_code}: {self.name}>"
