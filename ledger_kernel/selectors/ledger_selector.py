"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only queries over ledger entries and accounts: the
    lines of one transaction group, the trial balance, balances replayed
    from lines, and integrity scans.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - For every account, replayed_balance(code) equals the stored
      Account.current_balance when all writes went through LedgerService.
    - unbalanced_transactions() considers only non-reversed lines, so a
      reversed group and its reversal both drop out of the scan.
"""

from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select

from ledger_kernel.domain.balance_rules import balance_delta
from ledger_kernel.domain.dtos import AccountInfo, LedgerEntryRecord, TrialBalanceRow
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.ledger import EntryType, LedgerEntry
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")


def _to_record(entry: LedgerEntry, account_code: str) -> LedgerEntryRecord:
    return LedgerEntryRecord(
        id=entry.id,
        transaction_id=entry.transaction_id,
        account_code=account_code,
        entry_type=EntryType(entry.entry_type).value,
        amount=entry.amount,
        entry_date=entry.entry_date,
        description=entry.description,
        is_reversed=entry.is_reversed,
        reversal_entry_id=entry.reversal_entry_id,
        customer_id=entry.customer_id,
        invoice_id=entry.invoice_id,
        payment_id=entry.payment_id,
    )


class LedgerSelector(BaseSelector[LedgerEntry]):
    """
    Selector for ledger queries.

    Contract:
        Read-only; returns DTOs.  The running balances on Account are the
        fast path.  replayed_balance() and trial_balance() derive the same
        numbers from the lines and exist so the two can be compared.
    """

    def entries_for_transaction(self, transaction_id: str) -> list[LedgerEntryRecord]:
        rows = self.session.execute(
            select(LedgerEntry, Account.code)
            .join(Account, LedgerEntry.account_id == Account.id)
            .where(LedgerEntry.transaction_id == transaction_id)
            .order_by(LedgerEntry.created_at, LedgerEntry.id)
        ).all()
        return [_to_record(entry, code) for entry, code in rows]

    def entries_for_payment(self, payment_id) -> list[LedgerEntryRecord]:
        rows = self.session.execute(
            select(LedgerEntry, Account.code)
            .join(Account, LedgerEntry.account_id == Account.id)
            .where(LedgerEntry.payment_id == payment_id)
            .order_by(LedgerEntry.created_at, LedgerEntry.id)
        ).all()
        return [_to_record(entry, code) for entry, code in rows]

    def account_by_code(self, code: str) -> AccountInfo | None:
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        if account is None:
            return None
        return AccountInfo(
            id=account.id,
            code=account.code,
            name=account.name,
            account_type=AccountType(account.account_type).value,
            current_balance=account.current_balance,
            is_active=account.is_active,
        )

    def replayed_balance(self, code: str) -> Decimal:
        """
        Re-derive an account's balance from every line ever posted to it.

        Raises:
            AccountNotFoundError: No account with this code.
        """
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(code)

        entries = self.session.execute(
            select(LedgerEntry.entry_type, LedgerEntry.amount).where(
                LedgerEntry.account_id == account.id
            )
        ).all()

        balance = Decimal("0")
        for entry_type, amount in entries:
            balance += balance_delta(account.account_type, entry_type, amount)
        return balance

    def trial_balance(self) -> list[TrialBalanceRow]:
        """Debit and credit totals per account, ordered by account code."""
        debits: dict = defaultdict(lambda: Decimal("0"))
        credits: dict = defaultdict(lambda: Decimal("0"))

        for account_id, entry_type, amount in self.session.execute(
            select(LedgerEntry.account_id, LedgerEntry.entry_type, LedgerEntry.amount)
        ):
            if EntryType(entry_type) is EntryType.DEBIT:
                debits[account_id] += amount
            else:
                credits[account_id] += amount

        accounts = self.session.execute(
            select(Account).order_by(Account.code)
        ).scalars()

        return [
            TrialBalanceRow(
                account_code=account.code,
                account_name=account.name,
                account_type=AccountType(account.account_type).value,
                debit_total=debits[account.id],
                credit_total=credits[account.id],
                current_balance=account.current_balance,
            )
            for account in accounts
        ]

    def unbalanced_transactions(self) -> list[str]:
        """Transaction ids whose non-reversed debit and credit sums differ."""
        totals: dict[str, list[Decimal]] = {}

        for transaction_id, entry_type, amount in self.session.execute(
            select(
                LedgerEntry.transaction_id,
                LedgerEntry.entry_type,
                LedgerEntry.amount,
            ).where(LedgerEntry.is_reversed.is_(False))
        ):
            sums = totals.setdefault(transaction_id, [Decimal("0"), Decimal("0")])
            if EntryType(entry_type) is EntryType.DEBIT:
                sums[0] += amount
            else:
                sums[1] += amount

        unbalanced = sorted(
            transaction_id
            for transaction_id, (debit, credit) in totals.items()
            if debit != credit
        )
        if unbalanced:
            logger.warning(
                "ledger_integrity_unbalanced",
                extra={
                    "transaction_count": len(totals),
                    "unbalanced_count": len(unbalanced),
                },
            )
        return unbalanced
