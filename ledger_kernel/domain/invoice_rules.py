"""
Invoice rules -- payment progress and status derivation.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - paid + balance == total after every application of a payment; the
      balance is not clamped at zero.
    - CANCELLED is final: no payment activity changes it.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_kernel.models.invoice import InvoiceStatus

FINAL_STATUSES = frozenset({InvoiceStatus.CANCELLED})


def derive_invoice_status(
    total: Decimal,
    paid: Decimal,
    due_date: date,
    current_status: InvoiceStatus | str,
    today: date,
) -> InvoiceStatus:
    """
    Status an invoice should have given what has been paid against it.

    Order of checks: final state, fully paid, past due, partly paid,
    still a draft, otherwise SENT.
    """
    current = InvoiceStatus(current_status)
    if current in FINAL_STATUSES:
        return current
    if paid >= total:
        return InvoiceStatus.PAID
    if today > due_date:
        return InvoiceStatus.PARTIALLY_PAID if paid > 0 else InvoiceStatus.OVERDUE
    if paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    if current is InvoiceStatus.DRAFT:
        return current
    return InvoiceStatus.SENT


@dataclass(frozen=True)
class PaymentApplication:
    """New invoice figures after one payment is applied."""

    paid_amount: Decimal
    balance_amount: Decimal
    status: InvoiceStatus
    paid_date: date | None


def apply_payment(
    total: Decimal,
    paid: Decimal,
    current_status: InvoiceStatus | str,
    amount: Decimal,
    today: date,
) -> PaymentApplication:
    """
    Add a payment to an invoice's running figures.

    Status becomes PAID once the balance reaches zero or below, otherwise
    PARTIALLY_PAID if anything has been paid, otherwise it is unchanged.
    paid_date is set when PAID and cleared otherwise.
    """
    new_paid = paid + amount
    new_balance = total - new_paid

    if new_balance <= 0:
        status = InvoiceStatus.PAID
    elif new_paid > 0:
        status = InvoiceStatus.PARTIALLY_PAID
    else:
        status = InvoiceStatus(current_status)

    return PaymentApplication(
        paid_amount=new_paid,
        balance_amount=new_balance,
        status=status,
        paid_date=today if status is InvoiceStatus.PAID else None,
    )
