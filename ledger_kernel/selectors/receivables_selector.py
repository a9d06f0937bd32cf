"""
Module: ledger_kernel.selectors.receivables_selector
Responsibility: Database-backed ReceivablesDirectory for the matching engine,
    plus the pending bank line queue used by the batch reconciler.
Architecture position: Kernel > Selectors.  Structurally implements
    ledger_engines.matching.ReceivablesDirectory; the engine never sees a
    Session.

Invariants enforced:
    - Only invoices whose status is in the configured open set are returned.
    - Orderings are deterministic: customers by customer_code, invoices by
      (due_date, invoice_number), bank lines by (transaction_date,
      created_at, statement_reference).
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from ledger_engines.matching import CustomerSnapshot, InvoiceSnapshot
from ledger_kernel.models.bank_transaction import BankTransaction, BankTransactionStatus
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.invoice import OPEN_INVOICE_STATUSES, Invoice, InvoiceStatus
from ledger_kernel.selectors.base import BaseSelector


def _invoice_snapshot(invoice: Invoice) -> InvoiceSnapshot:
    return InvoiceSnapshot(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        customer_id=invoice.customer_id,
        balance_amount=invoice.balance_amount,
        due_date=invoice.due_date,
        status=InvoiceStatus(invoice.status).value,
    )


def _customer_snapshot(customer: Customer) -> CustomerSnapshot:
    return CustomerSnapshot(
        id=customer.id,
        customer_code=customer.customer_code,
        name=customer.name,
        is_active=customer.is_active,
    )


class ReceivablesSelector(BaseSelector[Invoice]):
    """Read-only receivables lookups for bank line matching."""

    def __init__(
        self,
        session,
        open_statuses: Iterable[InvoiceStatus | str] = OPEN_INVOICE_STATUSES,
    ):
        super().__init__(session)
        self.open_statuses = tuple(
            sorted(InvoiceStatus(status).value for status in open_statuses)
        )

    def _open_invoices_query(self):
        return (
            select(Invoice)
            .where(Invoice.status.in_(self.open_statuses))
            .order_by(Invoice.due_date, Invoice.invoice_number)
        )

    def open_invoice_by_number(self, invoice_number: str) -> InvoiceSnapshot | None:
        invoice = self.session.execute(
            self._open_invoices_query().where(Invoice.invoice_number == invoice_number)
        ).scalars().first()
        return _invoice_snapshot(invoice) if invoice is not None else None

    def active_customer_by_code(self, customer_code: str) -> CustomerSnapshot | None:
        customer = self.session.execute(
            select(Customer).where(
                Customer.customer_code == customer_code,
                Customer.is_active.is_(True),
            )
        ).scalar_one_or_none()
        return _customer_snapshot(customer) if customer is not None else None

    def active_customers(self) -> list[CustomerSnapshot]:
        customers = self.session.execute(
            select(Customer)
            .where(Customer.is_active.is_(True))
            .order_by(Customer.customer_code)
        ).scalars()
        return [_customer_snapshot(customer) for customer in customers]

    def open_invoices_for_customer(self, customer_id: UUID) -> list[InvoiceSnapshot]:
        invoices = self.session.execute(
            self._open_invoices_query().where(Invoice.customer_id == customer_id)
        ).scalars()
        return [_invoice_snapshot(invoice) for invoice in invoices]

    def open_invoices(self) -> list[InvoiceSnapshot]:
        invoices = self.session.execute(self._open_invoices_query()).scalars()
        return [_invoice_snapshot(invoice) for invoice in invoices]

    def pending_bank_transactions(self) -> list[tuple[UUID, str]]:
        """(id, statement_reference) of PENDING statement lines, oldest first."""
        return [
            (row.id, row.statement_reference)
            for row in self.session.execute(
                select(BankTransaction.id, BankTransaction.statement_reference)
                .where(BankTransaction.status == BankTransactionStatus.PENDING.value)
                .order_by(
                    BankTransaction.transaction_date,
                    BankTransaction.created_at,
                    BankTransaction.statement_reference,
                )
            )
        ]
