"""
ReconciliationService -- commits a bank line to a customer (and invoice).

Responsibility:
    Turns an accepted match into business records: a confirmed, reconciled
    Payment; the bank line marked MATCHED; the invoice's paid/balance/status;
    the customer's totals; and an append-only ReconciliationLog row.  Then
    posts the payment to the ledger.

Architecture position:
    Kernel > Services -- orchestrator.  Owns the commit/rollback of the
    reconciliation unit of work, and of the ledger post that follows it.

Invariants enforced:
    - A bank line is reconciled at most once: only PENDING or UNMATCHED
      lines are accepted, and the line is row-locked while checked.
    - The invoice, when given, belongs to the customer.
    - All business-record writes commit together or not at all.
    - invoice.paid_amount + invoice.balance_amount == invoice.total_amount.

Failure modes:
    - NotFoundError: bank line, customer or invoice absent.
    - AlreadyProcessedError: bank line already MATCHED.
    - MismatchError: invoice belongs to another customer.
    In every case the session is rolled back and nothing is written.

    The ledger post runs after the commit in its own transaction.  If it
    fails, it is rolled back and logged as ``ledger_post_failed``; the
    reconciliation stands and the payment has no ledger lines until the
    post is replayed.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.clock import Clock
from ledger_kernel.exceptions import AlreadyProcessedError, MismatchError, NotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.bank_transaction import (
    RECONCILABLE_STATUSES,
    BankTransaction,
    BankTransactionStatus,
)
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.invoice import Invoice
from ledger_kernel.models.payment import Payment, PaymentMethod, PaymentStatus
from ledger_kernel.models.reconciliation_log import (
    ReconciliationAction,
    ReconciliationLog,
)
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.invoice_status import apply_payment_to_invoice
from ledger_kernel.services.posting_helpers import BusinessEventPoster

logger = get_logger("services.reconciliation")

DEFAULT_REASON = "Manual reconciliation"


class ReconciliationService(BaseService[Payment]):
    """
    Applies a bank statement line to a customer and optional invoice.

    Contract:
        reconcile() commits on success and rolls back on failure.  The
        session must not hold unrelated pending work when it is called.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        poster: BusinessEventPoster | None = None,
        payment_method: PaymentMethod | str = PaymentMethod.BANK_TRANSFER,
    ):
        super().__init__(session, clock)
        self.poster = poster or BusinessEventPoster(session, self.clock)
        self.payment_method = PaymentMethod(payment_method)

    def reconcile(
        self,
        bank_transaction_id: UUID,
        customer_id: UUID,
        invoice_id: UUID | None,
        actor_id: UUID,
        notes: str | None = None,
        action: ReconciliationAction = ReconciliationAction.MANUAL_MATCHED,
    ) -> Payment:
        """
        Reconcile one bank line.

        Postconditions (on success):
            - Payment CONFIRMED and reconciled, amount = line amount.
            - Bank line MATCHED with matched_at/matched_by_id.
            - Invoice (if any) updated via apply_payment_to_invoice().
            - Customer total_paid += amount,
              current_balance = total_outstanding - total_paid.
            - One ReconciliationLog row with the given action.
            - Best-effort ledger post: DEBIT bank, CREDIT receivables.

        Raises:
            NotFoundError, AlreadyProcessedError, MismatchError.
        """
        with LogContext.bind(bank_transaction_id=bank_transaction_id, actor_id=actor_id):
            try:
                payment = self._apply(
                    bank_transaction_id,
                    customer_id,
                    invoice_id,
                    actor_id,
                    notes,
                    ReconciliationAction(action),
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                logger.warning(
                    "bank_transaction_reconcile_failed",
                    extra={
                        "customer_id": str(customer_id),
                        "invoice_id": str(invoice_id) if invoice_id else None,
                    },
                    exc_info=True,
                )
                raise

            logger.info(
                "bank_transaction_reconciled",
                extra={
                    "payment_id": str(payment.id),
                    "customer_id": str(customer_id),
                    "invoice_id": str(invoice_id) if invoice_id else None,
                    "amount": str(payment.amount),
                    "action": ReconciliationAction(action).value,
                },
            )

            self._post_to_ledger(payment, actor_id)

        return payment

    def _apply(
        self,
        bank_transaction_id: UUID,
        customer_id: UUID,
        invoice_id: UUID | None,
        actor_id: UUID,
        notes: str | None,
        action: ReconciliationAction,
    ) -> Payment:
        bank_txn = self.session.execute(
            select(BankTransaction)
            .where(BankTransaction.id == bank_transaction_id)
            .with_for_update()
        ).scalar_one_or_none()
        if bank_txn is None:
            raise NotFoundError("BankTransaction", str(bank_transaction_id))

        status = BankTransactionStatus(bank_txn.status)
        if status not in RECONCILABLE_STATUSES:
            raise AlreadyProcessedError(str(bank_transaction_id), status.value)

        customer = self.session.execute(
            select(Customer).where(Customer.id == customer_id).with_for_update()
        ).scalar_one_or_none()
        if customer is None:
            raise NotFoundError("Customer", str(customer_id))

        invoice = None
        if invoice_id is not None:
            invoice = self.session.execute(
                select(Invoice).where(Invoice.id == invoice_id).with_for_update()
            ).scalar_one_or_none()
            if invoice is None:
                raise NotFoundError("Invoice", str(invoice_id))
            if invoice.customer_id != customer_id:
                raise MismatchError(str(invoice_id), str(customer_id))

        now = self.clock.now()
        amount = bank_txn.amount

        payment = Payment(
            customer_id=customer_id,
            invoice_id=invoice_id,
            bank_transaction_id=bank_transaction_id,
            amount=amount,
            payment_date=bank_txn.transaction_date,
            payment_method=self.payment_method.value,
            reference=bank_txn.reference,
            status=PaymentStatus.CONFIRMED.value,
            is_reconciled=True,
            reconciled_at=now,
            reconciled_by_id=actor_id,
            notes=notes,
            created_by_id=actor_id,
        )
        self.session.add(payment)

        bank_txn.status = BankTransactionStatus.MATCHED.value
        bank_txn.matched_at = now
        bank_txn.matched_by_id = actor_id
        bank_txn.updated_by_id = actor_id

        if invoice is not None:
            apply_payment_to_invoice(invoice, amount, now.date())
            invoice.updated_by_id = actor_id

        customer.total_paid = customer.total_paid + amount
        customer.current_balance = customer.total_outstanding - customer.total_paid
        customer.updated_by_id = actor_id

        self.session.add(
            ReconciliationLog(
                bank_transaction_id=bank_transaction_id,
                action=action.value,
                matched_customer_id=customer_id,
                matched_invoice_id=invoice_id,
                matched_amount=amount,
                reason=notes or DEFAULT_REASON,
                created_by_id=actor_id,
            )
        )

        self.session.flush()
        return payment

    def _post_to_ledger(self, payment: Payment, actor_id: UUID) -> None:
        payment_id = payment.id
        amount = payment.amount
        try:
            self.poster.post_payment_received(
                payment_id=payment_id,
                customer_id=payment.customer_id,
                invoice_id=payment.invoice_id,
                amount=amount,
                actor_id=actor_id,
                description=f"Payment received: {payment.reference}",
                payment_date=payment.payment_date,
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.error(
                "ledger_post_failed",
                extra={
                    "payment_id": str(payment_id),
                    "amount": str(amount),
                },
                exc_info=True,
            )
