"""
LedgerService -- the double-entry posting engine.

Responsibility:
    Validates and writes balanced groups of ledger lines, applies each line
    to its account's running balance, reverses whole groups with offsetting
    lines, and scans the ledger for groups that do not balance.

Architecture position:
    Kernel > Services -- imperative shell.  The only writer of LedgerEntry
    rows and of Account.current_balance.

Invariants enforced:
    - A posting has at least two lines, every amount is positive, and the
      Decimal sum of DEBIT amounts equals the sum of CREDIT amounts exactly.
    - Every account code is resolved and row-locked (SELECT ... FOR UPDATE)
      before the first write, so a rejected posting writes nothing.
    - Lines and balance adjustments are flushed in the caller's transaction;
      the caller (or an orchestrating service) commits.
    - A group is reversed at most once.  Reversal never edits an amount;
      it adds opposite lines and flags the originals.

Failure modes:
    - InsufficientEntriesError, InvalidEntryAmountError,
      ImbalancedTransactionError: posting refused, nothing written.
    - AccountNotFoundError: unknown account code, nothing written.
    - TransactionNotFoundError: reversal of an unknown group.
    - AlreadyReversedError: reversal of a group already reversed.

Audit relevance:
    Balances are always derivable by replaying lines through
    domain/balance_rules.py (see LedgerSelector.replayed_balance).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select

from ledger_kernel.domain.balance_rules import balance_delta, reversal_delta
from ledger_kernel.domain.dtos import LedgerEntryInput
from ledger_kernel.domain.money import to_decimal
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyReversedError,
    ImbalancedTransactionError,
    InsufficientEntriesError,
    InvalidEntryAmountError,
    TransactionNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.ledger import EntryType, LedgerEntry
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.ledger")

LEDGER_PREFIX = "LEDGER"
REVERSAL_PREFIX = "REVERSAL"


def new_transaction_id(prefix: str) -> str:
    """Group id shared by every line of one posting, e.g. LEDGER-3F2A9C01B7D4."""
    return f"{prefix}-{uuid4().hex[:12].upper()}"


class LedgerService(BaseService[LedgerEntry]):
    """
    Posts, reverses and verifies ledger transactions.

    Contract:
        Flush-only.  Every method either completes all of its writes in the
        session or raises before making any.

    Non-goals:
        - Does not know about invoices or payments beyond carrying their ids
          on each line; BusinessEventPoster builds the business postings.
    """

    def post_transaction(
        self,
        entries: Sequence[LedgerEntryInput],
        actor_id: UUID,
        entry_date: date | None = None,
    ) -> list[LedgerEntry]:
        """
        Post one balanced transaction group.

        Preconditions:
            - At least two entries, each with a positive amount.
            - Sum of DEBIT amounts == sum of CREDIT amounts.
            - Every account_code exists.
        Postconditions:
            - One LedgerEntry per input, all sharing a new LEDGER-* id.
            - Each account's current_balance moved by balance_delta().

        Raises:
            InsufficientEntriesError, InvalidEntryAmountError,
            ImbalancedTransactionError, AccountNotFoundError.
        """
        if len(entries) < 2:
            raise InsufficientEntriesError(len(entries))

        lines: list[tuple[LedgerEntryInput, EntryType, Decimal]] = []
        debit_total = Decimal("0")
        credit_total = Decimal("0")

        for entry in entries:
            try:
                amount = to_decimal(entry.amount)
            except ValueError:
                raise InvalidEntryAmountError(entry.account_code, str(entry.amount))
            if amount <= 0:
                raise InvalidEntryAmountError(entry.account_code, str(amount))

            entry_type = EntryType(entry.entry_type)
            if entry_type is EntryType.DEBIT:
                debit_total += amount
            else:
                credit_total += amount
            lines.append((entry, entry_type, amount))

        if debit_total != credit_total:
            logger.warning(
                "ledger_transaction_rejected",
                extra={
                    "reason": "imbalanced",
                    "debits": str(debit_total),
                    "credits": str(credit_total),
                },
            )
            raise ImbalancedTransactionError(str(debit_total), str(credit_total))

        accounts = self._lock_accounts_by_code({entry.account_code for entry in entries})

        transaction_id = new_transaction_id(LEDGER_PREFIX)
        posting_date = entry_date or self.clock.today()
        created: list[LedgerEntry] = []

        with LogContext.bind(transaction_id=transaction_id, actor_id=actor_id):
            for entry, entry_type, amount in lines:
                account = accounts[entry.account_code]
                ledger_entry = LedgerEntry(
                    account_id=account.id,
                    transaction_id=transaction_id,
                    entry_type=entry_type.value,
                    amount=amount,
                    entry_date=posting_date,
                    description=entry.description,
                    customer_id=entry.customer_id,
                    invoice_id=entry.invoice_id,
                    payment_id=entry.payment_id,
                    created_by_id=actor_id,
                )
                self.session.add(ledger_entry)
                account.current_balance = account.current_balance + balance_delta(
                    account.account_type, entry_type, amount
                )
                account.updated_by_id = actor_id
                created.append(ledger_entry)

            self.session.flush()

            logger.info(
                "ledger_transaction_posted",
                extra={
                    "entry_count": len(created),
                    "total_amount": str(debit_total),
                    "entry_date": posting_date,
                },
            )

        return created

    def reverse_transaction(
        self,
        transaction_id: str,
        actor_id: UUID,
        reason: str,
    ) -> str:
        """
        Reverse a whole transaction group with offsetting lines.

        Postconditions:
            - A new REVERSAL-* group holds one opposite line per original,
              same account, amount and correlation ids.
            - Each original has is_reversed=True and reversal_entry_id set
              to its counterpart.
            - Every touched account is back to its pre-posting balance.

        Returns:
            The reversal group id.

        Raises:
            TransactionNotFoundError: No lines carry transaction_id.
            AlreadyReversedError: Any line of the group is already reversed.
        """
        originals = list(
            self.session.execute(
                select(LedgerEntry)
                .where(LedgerEntry.transaction_id == transaction_id)
                .order_by(LedgerEntry.created_at, LedgerEntry.id)
                .with_for_update()
            ).scalars()
        )

        if not originals:
            raise TransactionNotFoundError(transaction_id)

        if any(entry.is_reversed for entry in originals):
            logger.warning(
                "ledger_reversal_rejected",
                extra={"transaction_id": transaction_id, "reason": "already_reversed"},
            )
            raise AlreadyReversedError(transaction_id)

        accounts = self._lock_accounts_by_id({entry.account_id for entry in originals})
        reversal_id = new_transaction_id(REVERSAL_PREFIX)
        reversal_date = self.clock.today()

        with LogContext.bind(transaction_id=reversal_id, actor_id=actor_id):
            pairs: list[tuple[LedgerEntry, LedgerEntry]] = []
            for original in originals:
                original_type = EntryType(original.entry_type)
                counterpart = LedgerEntry(
                    id=uuid4(),
                    account_id=original.account_id,
                    transaction_id=reversal_id,
                    entry_type=original_type.opposite.value,
                    amount=original.amount,
                    entry_date=reversal_date,
                    description=f"REVERSAL: {reason}",
                    customer_id=original.customer_id,
                    invoice_id=original.invoice_id,
                    payment_id=original.payment_id,
                    created_by_id=actor_id,
                )
                self.session.add(counterpart)

                account = accounts[original.account_id]
                account.current_balance = account.current_balance + reversal_delta(
                    account.account_type, original_type, original.amount
                )
                account.updated_by_id = actor_id
                pairs.append((original, counterpart))

            # Counterparts must exist before the originals point at them
            self.session.flush()

            for original, counterpart in pairs:
                original.is_reversed = True
                original.reversal_entry_id = counterpart.id
                original.updated_by_id = actor_id

            self.session.flush()

            logger.info(
                "ledger_transaction_reversed",
                extra={
                    "original_transaction_id": transaction_id,
                    "entry_count": len(pairs),
                    "reason": reason,
                },
            )

        return reversal_id

    def verify_integrity(self) -> list[str]:
        """Group ids of non-reversed lines whose debits and credits differ."""
        unbalanced = LedgerSelector(self.session).unbalanced_transactions()
        logger.info(
            "ledger_integrity_verified",
            extra={"unbalanced_count": len(unbalanced)},
        )
        return unbalanced

    def get_account_balance(self, account_code: str) -> Decimal:
        """
        Current running balance of an account.

        Raises:
            AccountNotFoundError: No account with this code.
        """
        balance = self.session.execute(
            select(Account.current_balance).where(Account.code == account_code)
        ).scalar_one_or_none()
        if balance is None:
            raise AccountNotFoundError(account_code)
        return balance

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock_accounts_by_code(self, codes: set[str]) -> dict[str, Account]:
        # Lock in code order so concurrent postings acquire rows consistently
        found = {
            account.code: account
            for account in self.session.execute(
                select(Account)
                .where(Account.code.in_(sorted(codes)))
                .order_by(Account.code)
                .with_for_update()
            ).scalars()
        }
        missing = sorted(codes - found.keys())
        if missing:
            logger.warning(
                "ledger_transaction_rejected",
                extra={"reason": "account_not_found", "account_code": missing[0]},
            )
            raise AccountNotFoundError(missing[0])
        return found

    def _lock_accounts_by_id(self, account_ids: set[UUID]) -> dict[UUID, Account]:
        return {
            account.id: account
            for account in self.session.execute(
                select(Account)
                .where(Account.id.in_(list(account_ids)))
                .order_by(Account.code)
                .with_for_update()
            ).scalars()
        }
