"""Tests for the named business-event postings (BusinessEventPoster)."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import PostingAccounts
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.posting_helpers import BusinessEventPoster


def _lines(entries):
    return {(e.account.code, e.entry_type): e.amount for e in entries}


class TestBusinessEventPoster:
    def test_invoice_created(self, session, poster, standard_accounts, test_actor_id):
        invoice_id, customer_id = uuid4(), uuid4()

        entries = poster.post_invoice_created(
            invoice_id=invoice_id,
            customer_id=customer_id,
            amount=Decimal("1200.00"),
            actor_id=test_actor_id,
            description="Invoice INV-2024-0001",
            invoice_date=date(2023, 12, 15),
        )
        session.commit()

        assert _lines(entries) == {
            ("1200", "DEBIT"): Decimal("1200.00"),
            ("4000", "CREDIT"): Decimal("1200.00"),
        }
        assert all(e.invoice_id == invoice_id for e in entries)
        assert all(e.customer_id == customer_id for e in entries)
        assert all(e.entry_date == date(2023, 12, 15) for e in entries)

    def test_payment_received(self, session, poster, standard_accounts, test_actor_id):
        payment_id = uuid4()

        entries = poster.post_payment_received(
            payment_id=payment_id,
            customer_id=uuid4(),
            invoice_id=None,
            amount=Decimal("250.00"),
            actor_id=test_actor_id,
            description="Payment received: BACS 001",
        )
        session.commit()

        assert _lines(entries) == {
            ("1010", "DEBIT"): Decimal("250.00"),
            ("1200", "CREDIT"): Decimal("250.00"),
        }
        assert len(LedgerSelector(session).entries_for_payment(payment_id)) == 2

    def test_refund_issued_is_inverse_of_payment(
        self, session, poster, ledger_service, standard_accounts, test_actor_id
    ):
        common = {"customer_id": uuid4(), "invoice_id": None, "actor_id": test_actor_id}
        poster.post_payment_received(
            payment_id=uuid4(), amount=Decimal("90"), description="in", **common
        )
        entries = poster.post_refund_issued(
            payment_id=uuid4(), amount=Decimal("90"), description="out", **common
        )
        session.commit()

        assert _lines(entries) == {
            ("1200", "DEBIT"): Decimal("90"),
            ("1010", "CREDIT"): Decimal("90"),
        }
        assert ledger_service.get_account_balance("1010") == Decimal("0")
        assert ledger_service.get_account_balance("1200") == Decimal("0")

    def test_configured_account_codes(
        self, session, create_account, deterministic_clock, test_actor_id
    ):
        create_account("1020", "Operating Bank", AccountType.ASSET)
        create_account("1210", "Trade Debtors", AccountType.ASSET)
        create_account("4010", "Product Sales", AccountType.REVENUE)
        poster = BusinessEventPoster(
            session,
            deterministic_clock,
            accounts=PostingAccounts(
                bank="1020", accounts_receivable="1210", sales_revenue="4010"
            ),
        )

        entries = poster.post_invoice_created(
            invoice_id=uuid4(),
            customer_id=uuid4(),
            amount=Decimal("10"),
            actor_id=test_actor_id,
            description="x",
        )

        assert {e.account.code for e in entries} == {"1210", "4010"}

    def test_missing_chart_account(self, poster, create_account, test_actor_id):
        create_account("1010", "Bank", AccountType.ASSET)

        with pytest.raises(AccountNotFoundError):
            poster.post_payment_received(
                payment_id=uuid4(),
                customer_id=uuid4(),
                invoice_id=None,
                amount=Decimal("1"),
                actor_id=test_actor_id,
                description="x",
            )
