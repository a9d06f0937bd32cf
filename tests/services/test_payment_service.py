"""Tests for PaymentService.record_refund."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledger_kernel.exceptions import NotFoundError, PaymentNotRefundableError
from ledger_kernel.models.payment import Payment, PaymentStatus
from ledger_kernel.selectors.ledger_selector import LedgerSelector


@pytest.fixture
def reconciled_payment(
    reconciliation_service, standard_accounts, create_customer, create_invoice,
    create_bank_transaction, test_actor_id,
):
    """A 1000.00 invoice fully paid through reconciliation."""
    acme = create_customer("CUST-0001", "Acme", total_outstanding=Decimal("1000.00"))
    invoice = create_invoice(acme, "INV-2024-0001", "1000.00")
    line = create_bank_transaction("STMT-001", "1000.00", reference="BACS-1")
    payment = reconciliation_service.reconcile(line.id, acme.id, invoice.id, test_actor_id)
    return acme, invoice, payment


class TestRecordRefund:
    def test_refund_creates_negative_payment(
        self, session, payment_service, reconciled_payment, test_actor_id
    ):
        acme, invoice, payment = reconciled_payment

        refund = payment_service.record_refund(payment.id, test_actor_id, "Goods returned")

        assert refund.id != payment.id
        assert refund.amount == Decimal("-1000.00")
        assert refund.status == PaymentStatus.REFUNDED.value
        assert refund.reference == "REFUND-BACS-1"
        assert refund.notes == "Refund: Goods returned"
        assert refund.payment_method == payment.payment_method
        assert refund.customer_id == acme.id
        assert refund.invoice_id == invoice.id
        assert payment.status == PaymentStatus.REFUNDED.value

    def test_invoice_and_customer_restored(
        self, payment_service, reconciled_payment, test_actor_id
    ):
        acme, invoice, payment = reconciled_payment
        assert invoice.status == "PAID"

        payment_service.record_refund(payment.id, test_actor_id, "Goods returned")

        assert invoice.status == "SENT"
        assert invoice.paid_amount == Decimal("0")
        assert invoice.balance_amount == Decimal("1000.00")
        assert invoice.paid_date is None
        assert acme.total_paid == Decimal("0")
        assert acme.current_balance == Decimal("1000.00")

    def test_refund_posted_to_ledger(
        self, session, payment_service, ledger_service, reconciled_payment, test_actor_id
    ):
        _, _, payment = reconciled_payment

        refund = payment_service.record_refund(payment.id, test_actor_id, "Duplicate")

        lines = LedgerSelector(session).entries_for_payment(refund.id)
        assert {(e.account_code, e.entry_type) for e in lines} == {
            ("1200", "DEBIT"),
            ("1010", "CREDIT"),
        }
        assert all(e.amount == Decimal("1000.00") for e in lines)
        assert ledger_service.get_account_balance("1010") == Decimal("0")
        assert ledger_service.verify_integrity() == []

    def test_payment_without_reference_uses_id(
        self, payment_service, standard_accounts, create_customer, create_payment, test_actor_id
    ):
        acme = create_customer("CUST-0001", "Acme")
        payment = create_payment(acme, "25.00")

        refund = payment_service.record_refund(payment.id, test_actor_id, "Overcharge")

        assert refund.reference == f"REFUND-{payment.id}"

    def test_refund_twice_rejected(
        self, session, payment_service, reconciled_payment, test_actor_id
    ):
        _, _, payment = reconciled_payment
        payment_service.record_refund(payment.id, test_actor_id, "first")

        with pytest.raises(PaymentNotRefundableError) as exc_info:
            payment_service.record_refund(payment.id, test_actor_id, "second")

        assert exc_info.value.status == "REFUNDED"
        refunds = session.execute(
            select(Payment).where(Payment.amount < 0)
        ).scalars().all()
        assert len(refunds) == 1

    @pytest.mark.parametrize("status", [PaymentStatus.PENDING, PaymentStatus.FAILED])
    def test_only_confirmed_refundable(
        self, payment_service, create_customer, create_payment, test_actor_id, status
    ):
        payment = create_payment(create_customer("CUST-0001", "Acme"), "5.00", status=status)

        with pytest.raises(PaymentNotRefundableError):
            payment_service.record_refund(payment.id, test_actor_id, "nope")

    def test_unknown_payment(self, payment_service, test_actor_id):
        with pytest.raises(NotFoundError) as exc_info:
            payment_service.record_refund(uuid4(), test_actor_id, "x")
        assert exc_info.value.entity_type == "Payment"

    def test_ledger_failure_keeps_refund(
        self, session, deterministic_clock, create_customer, create_payment, test_actor_id,
        captured_logs,
    ):
        from ledger_kernel.services.payment_service import PaymentService

        # No chart of accounts
        service = PaymentService(session, deterministic_clock)
        payment = create_payment(create_customer("CUST-0001", "Acme"), "25.00")

        refund = service.record_refund(payment.id, test_actor_id, "Overcharge")

        session.expire_all()
        assert session.get(Payment, refund.id).status == PaymentStatus.REFUNDED.value
        assert session.get(Payment, payment.id).status == PaymentStatus.REFUNDED.value
        assert any(r["message"] == "ledger_post_failed" for r in captured_logs())
