"""Tests for the ORM immutability guards on ledger lines, log rows and accounts."""

from decimal import Decimal

import pytest
from sqlalchemy import event

from ledger_kernel.db import immutability
from ledger_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ledger_kernel.domain.dtos import LedgerEntryInput
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.models.ledger import LedgerEntry
from ledger_kernel.models.reconciliation_log import ReconciliationAction, ReconciliationLog


@pytest.fixture
def posted(session, ledger_service, standard_accounts, test_actor_id):
    entries = ledger_service.post_transaction(
        [
            LedgerEntryInput("1010", "DEBIT", "100.00", "Opening"),
            LedgerEntryInput("3000", "CREDIT", "100.00", "Opening"),
        ],
        test_actor_id,
    )
    session.commit()
    return entries


@pytest.fixture
def log_row(session, create_bank_transaction, test_actor_id):
    line = create_bank_transaction("STMT-001", "10.00")
    row = ReconciliationLog(
        bank_transaction_id=line.id,
        action=ReconciliationAction.UNMATCHED.value,
        reason="Could not auto-match",
        created_by_id=test_actor_id,
    )
    session.add(row)
    session.commit()
    return row


class TestLedgerEntryImmutability:
    def test_amount_cannot_change(self, session, posted):
        posted[0].amount = Decimal("999.00")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "LedgerEntry"
        assert "amount" in exc_info.value.reason

    def test_description_cannot_change(self, session, posted):
        posted[0].description = "edited"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, posted):
        session.delete(posted[0])

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_unreversing_blocked(self, session, posted, ledger_service, test_actor_id):
        ledger_service.reverse_transaction(posted[0].transaction_id, test_actor_id, "x")
        session.commit()

        posted[0].is_reversed = False

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_reversal_link_cannot_be_replaced(
        self, session, posted, ledger_service, test_actor_id
    ):
        ledger_service.reverse_transaction(posted[0].transaction_id, test_actor_id, "x")
        session.commit()

        posted[0].reversal_entry_id = posted[1].id

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_logged(self, session, posted, captured_logs):
        posted[0].amount = Decimal("1")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["entity_type"] == "LedgerEntry"
        assert blocked[0]["operation"] == "UPDATE"
        assert blocked[0]["field"] == "amount"

    def test_unregistered_listeners_allow_edit(self, session, posted):
        unregister_immutability_listeners()
        try:
            posted[0].description = "edited in a migration"
            session.flush()
        finally:
            register_immutability_listeners()


class TestReconciliationLogImmutability:
    def test_update_blocked(self, session, log_row):
        log_row.reason = "rewritten history"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "ReconciliationLog"

    def test_delete_blocked(self, session, log_row):
        session.delete(log_row)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestAccountDeletion:
    def test_delete_blocked(self, session, standard_accounts):
        session.delete(standard_accounts["bank"])

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "Account"

    def test_balance_updates_allowed(self, session, standard_accounts, test_actor_id):
        bank = standard_accounts["bank"]
        bank.name = "Main Bank"
        bank.updated_by_id = test_actor_id
        session.flush()


def test_registration_is_idempotent(engine):
    register_immutability_listeners()
    register_immutability_listeners()

    # A single unregister removes everything a double register added
    unregister_immutability_listeners()
    assert not event.contains(
        LedgerEntry, "before_update", immutability._check_ledger_entry_immutability
    )
    register_immutability_listeners()


def test_error_carries_entity_id(session, posted):
    entry_id = posted[0].id
    posted[0].amount = Decimal("5")

    with pytest.raises(ImmutabilityViolationError) as exc_info:
        session.flush()

    assert exc_info.value.entity_id == str(entry_id)
    assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
