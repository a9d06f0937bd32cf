"""
InvoiceStatusService -- keeps invoice figures consistent with payments.

Responsibility:
    Applies a single payment to an invoice (used by reconciliation) and
    recalculates invoices from scratch from their CONFIRMED payments (used
    after refunds and for repair).  Also produces read-side summaries.

Architecture position:
    Kernel > Services.  Flush-only; callers commit.

Invariants enforced:
    - paid_amount + balance_amount == total_amount after every write.
    - Recalculated paid_amount is the Decimal sum of CONFIRMED payments.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import InvoiceSummary, PaymentRecord, StatusChange
from ledger_kernel.domain.invoice_rules import apply_payment, derive_invoice_status
from ledger_kernel.domain.money import round_money
from ledger_kernel.exceptions import NotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.invoice import Invoice, InvoiceStatus
from ledger_kernel.models.payment import Payment, PaymentMethod, PaymentStatus
from ledger_kernel.services.base import BaseService

logger = get_logger("services.invoice_status")

CLOSED_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)


def apply_payment_to_invoice(invoice: Invoice, amount: Decimal, today: date) -> InvoiceStatus:
    """Apply one payment to an invoice in place and return the new status."""
    result = apply_payment(
        total=invoice.total_amount,
        paid=invoice.paid_amount,
        current_status=invoice.status,
        amount=amount,
        today=today,
    )
    invoice.paid_amount = result.paid_amount
    invoice.balance_amount = result.balance_amount
    invoice.status = result.status.value
    invoice.paid_date = result.paid_date
    return result.status


class InvoiceStatusService(BaseService[Invoice]):
    """Recalculates invoices from their confirmed payments."""

    def _get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", str(invoice_id))
        return invoice

    def _confirmed_payments(self, invoice_id: UUID) -> list[Payment]:
        return list(
            self.session.execute(
                select(Payment)
                .where(
                    Payment.invoice_id == invoice_id,
                    Payment.status == PaymentStatus.CONFIRMED.value,
                )
                .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            ).scalars()
        )

    def recalculate(self, invoice_id: UUID) -> StatusChange:
        """
        Rebuild paid/balance/status from CONFIRMED payments.

        Raises:
            NotFoundError: invoice does not exist.
        """
        invoice = self._get_invoice(invoice_id)
        return self._recalculate(invoice)

    def _recalculate(self, invoice: Invoice) -> StatusChange:
        old_status = InvoiceStatus(invoice.status)
        paid = sum(
            (payment.amount for payment in self._confirmed_payments(invoice.id)),
            Decimal("0"),
        )
        today = self.clock.today()
        new_status = derive_invoice_status(
            invoice.total_amount, paid, invoice.due_date, old_status, today
        )

        invoice.paid_amount = paid
        invoice.balance_amount = invoice.total_amount - paid
        invoice.status = new_status.value
        if new_status is InvoiceStatus.PAID:
            if old_status is not InvoiceStatus.PAID or invoice.paid_date is None:
                invoice.paid_date = today
        else:
            invoice.paid_date = None
        self.session.flush()

        if new_status is not old_status:
            logger.info(
                "invoice_status_changed",
                extra={
                    "invoice_id": str(invoice.id),
                    "invoice_number": invoice.invoice_number,
                    "old_status": old_status.value,
                    "new_status": new_status.value,
                },
            )

        return StatusChange(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            old_status=old_status.value,
            new_status=new_status.value,
            paid_amount=paid,
            balance_amount=invoice.balance_amount,
        )

    def recalculate_customer_invoices(self, customer_id: UUID) -> list[StatusChange]:
        invoices = self.session.execute(
            select(Invoice)
            .where(Invoice.customer_id == customer_id)
            .order_by(Invoice.issue_date, Invoice.invoice_number)
        ).scalars()
        return [self._recalculate(invoice) for invoice in invoices]

    def invoice_summary(self, invoice_id: UUID) -> InvoiceSummary:
        """
        Payment progress of one invoice, as of the service clock.

        percentage_paid is rounded to whole percent.  An invoice is overdue
        when its due date has passed and it is neither PAID nor CANCELLED.
        """
        invoice = self._get_invoice(invoice_id)
        return self._summarize(invoice, self.clock.today())

    def unpaid_invoices(self, customer_id: UUID | None = None) -> list[InvoiceSummary]:
        """
        Summaries of every invoice still awaiting money, oldest due first.

        Status is re-derived from confirmed payments, so an invoice whose
        stored status lags behind its payments is judged by the payments.
        """
        query = (
            select(Invoice)
            .where(Invoice.status.not_in([status.value for status in CLOSED_STATUSES]))
            .order_by(Invoice.due_date, Invoice.invoice_number)
        )
        if customer_id is not None:
            query = query.where(Invoice.customer_id == customer_id)

        today = self.clock.today()
        summaries = [
            self._summarize(invoice, today)
            for invoice in self.session.execute(query).scalars()
        ]
        return [s for s in summaries if InvoiceStatus(s.status) not in CLOSED_STATUSES]

    def payment_history(self, invoice_id: UUID) -> list[PaymentRecord]:
        """Every payment recorded against an invoice, newest first, any status."""
        payments = self.session.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        ).scalars()
        return [
            PaymentRecord(
                id=payment.id,
                invoice_id=payment.invoice_id,
                amount=payment.amount,
                payment_date=payment.payment_date,
                payment_method=PaymentMethod(payment.payment_method).value,
                status=PaymentStatus(payment.status).value,
                reference=payment.reference,
                is_reconciled=payment.is_reconciled,
                reconciled_by_id=payment.reconciled_by_id,
            )
            for payment in payments
        ]

    def _summarize(self, invoice: Invoice, today: date) -> InvoiceSummary:
        payments = self._confirmed_payments(invoice.id)
        paid = sum((payment.amount for payment in payments), Decimal("0"))
        status = derive_invoice_status(
            invoice.total_amount, paid, invoice.due_date, invoice.status, today
        )

        if invoice.total_amount > 0:
            percentage = round_money(paid / invoice.total_amount * 100, places=0)
        else:
            percentage = Decimal("0")

        is_overdue = status not in CLOSED_STATUSES and today > invoice.due_date

        return InvoiceSummary(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            status=status.value,
            total_amount=invoice.total_amount,
            paid_amount=paid,
            balance_amount=invoice.total_amount - paid,
            percentage_paid=percentage,
            payment_count=len(payments),
            last_payment_date=payments[0].payment_date if payments else None,
            is_overdue=is_overdue,
            days_overdue=(today - invoice.due_date).days if is_overdue else 0,
        )
