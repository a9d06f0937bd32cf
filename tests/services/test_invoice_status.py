"""Tests for InvoiceStatusService: recalculation and payment summaries."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.exceptions import NotFoundError
from ledger_kernel.models.invoice import InvoiceStatus
from ledger_kernel.models.payment import PaymentStatus
from ledger_kernel.services.invoice_status import apply_payment_to_invoice


class TestApplyPaymentToInvoice:
    def test_updates_invoice_in_place(self, create_customer, create_invoice):
        invoice = create_invoice(create_customer("CUST-0001", "Acme"), "INV-2024-0001", "100")

        status = apply_payment_to_invoice(invoice, Decimal("100"), date(2024, 1, 5))

        assert status is InvoiceStatus.PAID
        assert invoice.status == "PAID"
        assert invoice.paid_date == date(2024, 1, 5)
        assert invoice.paid_amount + invoice.balance_amount == invoice.total_amount


class TestRecalculate:
    def test_sums_only_confirmed_payments(
        self, session, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "1000.00")
        create_payment(acme, "300.00", invoice=invoice)
        create_payment(acme, "200.00", invoice=invoice)
        create_payment(acme, "450.00", invoice=invoice, status=PaymentStatus.FAILED)

        change = invoice_status_service.recalculate(invoice.id)

        assert change.old_status == "SENT"
        assert change.new_status == "PARTIALLY_PAID"
        assert change.changed
        assert invoice.paid_amount == Decimal("500.00")
        assert invoice.balance_amount == Decimal("500.00")

    def test_fully_paid_sets_paid_date(
        self, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "80.00")
        create_payment(acme, "80.00", invoice=invoice)

        change = invoice_status_service.recalculate(invoice.id)

        assert change.new_status == "PAID"
        assert invoice.paid_date == date(2024, 1, 1)

    def test_no_payments_past_due_is_overdue(
        self, invoice_status_service, create_customer, create_invoice
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "80.00", due_date=date(2023, 12, 1))

        change = invoice_status_service.recalculate(invoice.id)

        assert change.new_status == "OVERDUE"
        assert invoice.paid_date is None

    def test_cancelled_untouched_status(
        self, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "80.00", status=InvoiceStatus.CANCELLED)
        create_payment(acme, "80.00", invoice=invoice)

        change = invoice_status_service.recalculate(invoice.id)

        assert change.new_status == "CANCELLED"
        assert not change.changed

    def test_unknown_invoice(self, invoice_status_service, engine):
        with pytest.raises(NotFoundError):
            invoice_status_service.recalculate(uuid4())

    def test_recalculate_customer_invoices(
        self, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        first = create_invoice(acme, "INV-2024-0001", "10.00")
        create_invoice(acme, "INV-2024-0002", "20.00")
        create_payment(acme, "10.00", invoice=first)

        changes = invoice_status_service.recalculate_customer_invoices(acme.id)

        assert [c.invoice_number for c in changes] == ["INV-2024-0001", "INV-2024-0002"]
        assert [c.new_status for c in changes] == ["PAID", "SENT"]

    def test_logs_status_change(
        self, invoice_status_service, create_customer, create_invoice, create_payment,
        captured_logs,
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "10.00")
        create_payment(acme, "10.00", invoice=invoice)

        invoice_status_service.recalculate(invoice.id)

        changed = [r for r in captured_logs() if r["message"] == "invoice_status_changed"]
        assert changed[0]["old_status"] == "SENT"
        assert changed[0]["new_status"] == "PAID"


class TestInvoiceSummary:
    def test_progress_figures(
        self, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "300.00")
        create_payment(acme, "100.00", invoice=invoice, payment_date=date(2023, 12, 20))
        create_payment(acme, "100.00", invoice=invoice, payment_date=date(2023, 12, 28))

        summary = invoice_status_service.invoice_summary(invoice.id)

        assert summary.paid_amount == Decimal("200.00")
        assert summary.balance_amount == Decimal("100.00")
        assert summary.percentage_paid == Decimal("67")
        assert summary.payment_count == 2
        assert summary.last_payment_date == date(2023, 12, 28)
        assert summary.status == "PARTIALLY_PAID"
        assert not summary.is_overdue
        assert summary.days_overdue == 0

    def test_overdue(
        self, invoice_status_service, deterministic_clock, create_customer, create_invoice
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "300.00", due_date=date(2024, 1, 10))
        deterministic_clock.advance(days=24)

        summary = invoice_status_service.invoice_summary(invoice.id)

        assert summary.is_overdue
        assert summary.days_overdue == 15
        assert summary.status == "OVERDUE"
        assert summary.percentage_paid == Decimal("0")


class TestUnpaidInvoices:
    def test_open_invoices_oldest_due_first(
        self, invoice_status_service, create_customer, create_invoice
    ):
        acme = create_customer("CUST-0001", "Acme")
        later = create_invoice(acme, "INV-2024-0001", "100.00", due_date=date(2024, 2, 1))
        create_invoice(acme, "INV-2024-0002", "100.00", status=InvoiceStatus.PAID,
                       paid_amount="100.00")
        create_invoice(acme, "INV-2024-0003", "100.00", status=InvoiceStatus.CANCELLED)
        earlier = create_invoice(acme, "INV-2024-0004", "250.00", due_date=date(2023, 12, 15))

        unpaid = invoice_status_service.unpaid_invoices(acme.id)

        assert [s.invoice_id for s in unpaid] == [earlier.id, later.id]
        assert unpaid[0].status == "OVERDUE"
        assert unpaid[0].days_overdue == 17

    def test_judged_by_confirmed_payments(
        self, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        settled = create_invoice(acme, "INV-2024-0001", "80.00")
        create_payment(acme, "80.00", invoice=settled)
        partial = create_invoice(acme, "INV-2024-0002", "80.00")
        create_payment(acme, "30.00", invoice=partial)

        unpaid = invoice_status_service.unpaid_invoices(acme.id)

        # Stored status of the settled invoice is still SENT
        assert [s.invoice_number for s in unpaid] == ["INV-2024-0002"]
        assert unpaid[0].status == "PARTIALLY_PAID"
        assert unpaid[0].balance_amount == Decimal("50.00")

    def test_all_customers_when_unfiltered(
        self, invoice_status_service, create_customer, create_invoice
    ):
        acme = create_customer("CUST-0001", "Acme")
        globex = create_customer("CUST-0002", "Globex")
        create_invoice(acme, "INV-2024-0001", "10.00", due_date=date(2024, 1, 20))
        create_invoice(globex, "INV-2024-0002", "10.00", due_date=date(2024, 1, 10))

        assert [s.invoice_number for s in invoice_status_service.unpaid_invoices()] == [
            "INV-2024-0002", "INV-2024-0001",
        ]
        assert len(invoice_status_service.unpaid_invoices(globex.id)) == 1


class TestPaymentHistory:
    def test_newest_first_any_status(
        self, invoice_status_service, create_customer, create_invoice, create_payment
    ):
        acme = create_customer("CUST-0001", "Acme")
        invoice = create_invoice(acme, "INV-2024-0001", "500.00")
        other = create_invoice(acme, "INV-2024-0002", "500.00")
        first = create_payment(acme, "100.00", invoice=invoice, reference="CHQ-1",
                               payment_date=date(2023, 12, 1))
        failed = create_payment(acme, "200.00", invoice=invoice, status=PaymentStatus.FAILED,
                                payment_date=date(2023, 12, 20))
        create_payment(acme, "50.00", invoice=other)

        history = invoice_status_service.payment_history(invoice.id)

        assert [p.id for p in history] == [failed.id, first.id]
        assert history[0].status == "FAILED"
        assert history[1].reference == "CHQ-1"
        assert history[1].payment_method == "CHEQUE"
        assert history[1].amount == Decimal("100.00")

    def test_invoice_without_payments(
        self, invoice_status_service, create_customer, create_invoice
    ):
        invoice = create_invoice(create_customer("CUST-0001", "Acme"), "INV-2024-0001", "5")
        assert invoice_status_service.payment_history(invoice.id) == []
