"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- An in-memory SQLite database, created fresh for every test
- Factory fixtures for accounts, customers, invoices and bank lines
- Service fixtures sharing one session and a deterministic clock
- Captured structured logs

Environment Variables:
- DATABASE_URL: optional database URL.  Defaults to in-memory SQLite.
"""

import json
import logging
import os
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.db.immutability import unregister_immutability_listeners
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.bank_transaction import BankTransaction, BankTransactionStatus
from ledger_kernel.models.customer import Customer
from ledger_kernel.models.invoice import Invoice, InvoiceStatus
from ledger_kernel.models.payment import Payment, PaymentMethod, PaymentStatus
from ledger_kernel.services.auto_reconciler import AutoReconciler
from ledger_kernel.services.invoice_status import InvoiceStatusService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.matching_service import MatchingService
from ledger_kernel.services.payment_service import PaymentService
from ledger_kernel.services.posting_helpers import BusinessEventPoster
from ledger_kernel.services.reconciliation_service import ReconciliationService

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

# DeterministicClock default: 2024-01-01 12:00 UTC
TODAY = date(2024, 1, 1)


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", "sqlite://")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger_service):
            ledger_service.post_transaction(...)
            logs = captured_logs()
            assert any(r["message"] == "ledger_transaction_posted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh schema per test; immutability listeners installed."""
    init_engine_from_url(get_database_url())
    create_tables()
    yield
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    s = get_session()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def create_account(session, test_actor_id):
    def _create(code: str, name: str, account_type: AccountType, **kwargs) -> Account:
        account = Account(
            code=code,
            name=name,
            account_type=AccountType(account_type).value,
            current_balance=kwargs.pop("current_balance", Decimal("0")),
            created_by_id=test_actor_id,
            **kwargs,
        )
        session.add(account)
        session.flush()
        return account

    return _create


@pytest.fixture
def standard_accounts(create_account, session) -> dict[str, Account]:
    """The default chart of accounts, committed."""
    accounts = {
        "cash_clearing": create_account("1300", "Cash Clearing", AccountType.ASSET),
        "bank": create_account("1010", "Bank", AccountType.ASSET),
        "accounts_receivable": create_account("1200", "Accounts Receivable", AccountType.ASSET),
        "owners_equity": create_account("3000", "Owner's Equity", AccountType.EQUITY),
        "sales_revenue": create_account("4000", "Sales Revenue", AccountType.REVENUE),
        "service_revenue": create_account("4100", "Service Revenue", AccountType.REVENUE),
    }
    session.commit()
    return accounts


@pytest.fixture
def create_customer(session, test_actor_id):
    def _create(
        customer_code: str,
        name: str,
        is_active: bool = True,
        total_outstanding: Decimal = Decimal("0"),
    ) -> Customer:
        customer = Customer(
            customer_code=customer_code,
            name=name,
            is_active=is_active,
            total_outstanding=total_outstanding,
            total_paid=Decimal("0"),
            current_balance=total_outstanding,
            created_by_id=test_actor_id,
        )
        session.add(customer)
        session.commit()
        return customer

    return _create


@pytest.fixture
def create_invoice(session, test_actor_id):
    def _create(
        customer: Customer,
        invoice_number: str,
        total_amount: Decimal | str,
        status: InvoiceStatus = InvoiceStatus.SENT,
        due_date: date | None = None,
        issue_date: date | None = None,
        paid_amount: Decimal | str = Decimal("0"),
    ) -> Invoice:
        total = Decimal(str(total_amount))
        paid = Decimal(str(paid_amount))
        invoice = Invoice(
            invoice_number=invoice_number,
            customer_id=customer.id,
            total_amount=total,
            paid_amount=paid,
            balance_amount=total - paid,
            status=InvoiceStatus(status).value,
            issue_date=issue_date or TODAY - timedelta(days=10),
            due_date=due_date or TODAY + timedelta(days=20),
            created_by_id=test_actor_id,
        )
        session.add(invoice)
        session.commit()
        return invoice

    return _create


@pytest.fixture
def create_bank_transaction(session, test_actor_id):
    def _create(
        statement_reference: str,
        amount: Decimal | str,
        reference: str | None = None,
        transaction_date: date | None = None,
        status: BankTransactionStatus = BankTransactionStatus.PENDING,
    ) -> BankTransaction:
        bank_txn = BankTransaction(
            statement_reference=statement_reference,
            amount=Decimal(str(amount)),
            reference=reference,
            transaction_date=transaction_date or TODAY,
            status=BankTransactionStatus(status).value,
            created_by_id=test_actor_id,
        )
        session.add(bank_txn)
        session.commit()
        return bank_txn

    return _create


@pytest.fixture
def create_payment(session, test_actor_id):
    """A CONFIRMED payment recorded directly, outside reconciliation."""

    def _create(
        customer: Customer,
        amount: Decimal | str,
        invoice: Invoice | None = None,
        reference: str | None = None,
        status: PaymentStatus = PaymentStatus.CONFIRMED,
        payment_date: date | None = None,
    ) -> Payment:
        payment = Payment(
            customer_id=customer.id,
            invoice_id=invoice.id if invoice is not None else None,
            amount=Decimal(str(amount)),
            payment_date=payment_date or TODAY,
            payment_method=PaymentMethod.CHEQUE.value,
            reference=reference,
            status=PaymentStatus(status).value,
            created_by_id=test_actor_id,
        )
        session.add(payment)
        session.commit()
        return payment

    return _create


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def ledger_service(session, deterministic_clock) -> LedgerService:
    return LedgerService(session, deterministic_clock)


@pytest.fixture
def poster(session, deterministic_clock, ledger_service) -> BusinessEventPoster:
    return BusinessEventPoster(session, deterministic_clock, ledger=ledger_service)


@pytest.fixture
def invoice_status_service(session, deterministic_clock) -> InvoiceStatusService:
    return InvoiceStatusService(session, deterministic_clock)


@pytest.fixture
def matching_service(session, deterministic_clock) -> MatchingService:
    return MatchingService(session, deterministic_clock)


@pytest.fixture
def reconciliation_service(session, deterministic_clock, poster) -> ReconciliationService:
    return ReconciliationService(session, deterministic_clock, poster=poster)


@pytest.fixture
def auto_reconciler(session, deterministic_clock, reconciliation_service) -> AutoReconciler:
    return AutoReconciler(session, deterministic_clock, reconciler=reconciliation_service)


@pytest.fixture
def payment_service(session, deterministic_clock, poster) -> PaymentService:
    return PaymentService(session, deterministic_clock, poster=poster)
