"""
BusinessEventPoster -- fixed-shape postings for recurring business events.

Responsibility:
    Each business event has its own named helper with a fixed debit/credit
    pair.  A new event type gets a new helper here; LedgerService itself is
    never special-cased.

    Event              | DEBIT                | CREDIT
    -------------------|----------------------|----------------------
    invoice created    | accounts receivable  | sales revenue
    payment received   | bank                 | accounts receivable
    refund issued      | accounts receivable  | bank

Architecture position:
    Kernel > Services.  Thin wrapper over LedgerService; flush-only.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import LedgerEntryInput, PostingAccounts
from ledger_kernel.models.ledger import EntryType, LedgerEntry
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService


class BusinessEventPoster(BaseService[LedgerEntry]):
    """Named double-entry postings over LedgerService."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        accounts: PostingAccounts | None = None,
        ledger: LedgerService | None = None,
    ):
        super().__init__(session, clock)
        self.accounts = accounts or PostingAccounts()
        self.ledger = ledger or LedgerService(session, self.clock)

    def _post_pair(
        self,
        debit_code: str,
        credit_code: str,
        amount: Decimal,
        actor_id: UUID,
        description: str,
        entry_date: date | None,
        customer_id: UUID | None = None,
        invoice_id: UUID | None = None,
        payment_id: UUID | None = None,
    ) -> list[LedgerEntry]:
        common = {
            "amount": amount,
            "description": description,
            "customer_id": customer_id,
            "invoice_id": invoice_id,
            "payment_id": payment_id,
        }
        return self.ledger.post_transaction(
            [
                LedgerEntryInput(debit_code, EntryType.DEBIT.value, **common),
                LedgerEntryInput(credit_code, EntryType.CREDIT.value, **common),
            ],
            actor_id=actor_id,
            entry_date=entry_date,
        )

    def post_invoice_created(
        self,
        invoice_id: UUID,
        customer_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        description: str,
        invoice_date: date | None = None,
    ) -> list[LedgerEntry]:
        """DEBIT accounts receivable, CREDIT sales revenue for the invoice total."""
        return self._post_pair(
            self.accounts.accounts_receivable,
            self.accounts.sales_revenue,
            amount,
            actor_id,
            description,
            invoice_date,
            customer_id=customer_id,
            invoice_id=invoice_id,
        )

    def post_payment_received(
        self,
        payment_id: UUID,
        customer_id: UUID,
        invoice_id: UUID | None,
        amount: Decimal,
        actor_id: UUID,
        description: str,
        payment_date: date | None = None,
    ) -> list[LedgerEntry]:
        """DEBIT bank, CREDIT accounts receivable for the payment amount."""
        return self._post_pair(
            self.accounts.bank,
            self.accounts.accounts_receivable,
            amount,
            actor_id,
            description,
            payment_date,
            customer_id=customer_id,
            invoice_id=invoice_id,
            payment_id=payment_id,
        )

    def post_refund_issued(
        self,
        payment_id: UUID,
        customer_id: UUID,
        invoice_id: UUID | None,
        amount: Decimal,
        actor_id: UUID,
        description: str,
        refund_date: date | None = None,
    ) -> list[LedgerEntry]:
        """DEBIT accounts receivable, CREDIT bank.  amount is the positive refund."""
        return self._post_pair(
            self.accounts.accounts_receivable,
            self.accounts.bank,
            amount,
            actor_id,
            description,
            refund_date,
            customer_id=customer_id,
            invoice_id=invoice_id,
            payment_id=payment_id,
        )
