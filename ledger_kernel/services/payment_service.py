"""
PaymentService -- refunds of confirmed payments.

Responsibility:
    Records a refund as a new negative-amount payment, retires the original
    payment, recalculates the invoice from the payments still confirmed,
    and reduces the customer's totals.  Then posts the refund to the ledger.

Architecture position:
    Kernel > Services -- orchestrator.  Same transaction shape as
    ReconciliationService: one committed unit of work for the business
    records, then a separate best-effort ledger post.

Invariants enforced:
    - Only CONFIRMED payments can be refunded, and only once (the original
      leaves CONFIRMED in the same unit of work).
    - The invoice keeps paid_amount + balance_amount == total_amount.

Failure modes:
    - NotFoundError: no payment with this id.
    - PaymentNotRefundableError: payment is not CONFIRMED.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.clock import Clock
from ledger_kernel.exceptions import NotFoundError, PaymentNotRefundableError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.payment import Payment, PaymentStatus
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.invoice_status import InvoiceStatusService
from ledger_kernel.services.posting_helpers import BusinessEventPoster

logger = get_logger("services.payment")


class PaymentService(BaseService[Payment]):
    """Refunds confirmed customer payments."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        poster: BusinessEventPoster | None = None,
    ):
        super().__init__(session, clock)
        self.poster = poster or BusinessEventPoster(session, self.clock)
        self.invoices = InvoiceStatusService(session, self.clock)

    def record_refund(self, payment_id: UUID, actor_id: UUID, reason: str) -> Payment:
        """
        Refund a confirmed payment in full.

        Postconditions:
            - New payment: amount = -original, status REFUNDED,
              reference REFUND-<original reference>.
            - Original payment status REFUNDED.
            - Invoice recalculated from its CONFIRMED payments.
            - Customer total_paid reduced, current_balance recomputed.
            - Best-effort ledger post: DEBIT receivables, CREDIT bank.

        Raises:
            NotFoundError, PaymentNotRefundableError.
        """
        with LogContext.bind(actor_id=actor_id):
            try:
                refund = self._apply(payment_id, actor_id, reason)
                self.session.commit()
            except Exception:
                self.session.rollback()
                logger.warning(
                    "payment_refund_failed",
                    extra={"payment_id": str(payment_id)},
                    exc_info=True,
                )
                raise

            logger.info(
                "payment_refunded",
                extra={
                    "payment_id": str(payment_id),
                    "refund_payment_id": str(refund.id),
                    "amount": str(-refund.amount),
                    "reason": reason,
                },
            )

            self._post_to_ledger(refund, actor_id)

        return refund

    def _apply(self, payment_id: UUID, actor_id: UUID, reason: str) -> Payment:
        original = self.session.execute(
            select(Payment).where(Payment.id == payment_id).with_for_update()
        ).scalar_one_or_none()
        if original is None:
            raise NotFoundError("Payment", str(payment_id))

        status = PaymentStatus(original.status)
        if status is not PaymentStatus.CONFIRMED:
            raise PaymentNotRefundableError(str(payment_id), status.value)

        refund = Payment(
            customer_id=original.customer_id,
            invoice_id=original.invoice_id,
            amount=-original.amount,
            payment_date=self.clock.today(),
            payment_method=original.payment_method,
            reference=f"REFUND-{original.reference or original.id}",
            status=PaymentStatus.REFUNDED.value,
            notes=f"Refund: {reason}",
            created_by_id=actor_id,
        )
        self.session.add(refund)

        original.status = PaymentStatus.REFUNDED.value
        original.updated_by_id = actor_id
        self.session.flush()

        if original.invoice_id is not None:
            self.invoices.recalculate(original.invoice_id)

        customer = self.session.execute(
            select(Customer).where(Customer.id == original.customer_id).with_for_update()
        ).scalar_one()
        customer.total_paid = customer.total_paid - original.amount
        customer.current_balance = customer.total_outstanding - customer.total_paid
        customer.updated_by_id = actor_id

        self.session.flush()
        return refund

    def _post_to_ledger(self, refund: Payment, actor_id: UUID) -> None:
        refund_id = refund.id
        amount = -refund.amount
        try:
            self.poster.post_refund_issued(
                payment_id=refund_id,
                customer_id=refund.customer_id,
                invoice_id=refund.invoice_id,
                amount=amount,
                actor_id=actor_id,
                description=f"Refund issued: {refund.reference}",
                refund_date=refund.payment_date,
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.error(
                "ledger_post_failed",
                extra={"payment_id": str(refund_id), "amount": str(amount)},
                exc_info=True,
            )
