"""
Balance rules -- how a ledger line moves an account's running balance.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  Uses the AccountType and
    EntryType enums defined beside their ORM models.

Invariants enforced:
    - ASSET and EXPENSE accounts are debit-normal: DEBIT adds, CREDIT subtracts.
    - LIABILITY, EQUITY and REVENUE accounts are credit-normal: CREDIT adds,
      DEBIT subtracts.
    - reversal_delta(...) == -balance_delta(...) for the same line, so a
      reversed transaction leaves every balance where it started.
"""

from decimal import Decimal

from ledger_kernel.models.account import AccountType
from ledger_kernel.models.ledger import EntryType

DEBIT_NORMAL_TYPES = frozenset({AccountType.ASSET, AccountType.EXPENSE})


def is_debit_normal(account_type: AccountType | str) -> bool:
    return AccountType(account_type) in DEBIT_NORMAL_TYPES


def balance_delta(
    account_type: AccountType | str,
    entry_type: EntryType | str,
    amount: Decimal,
) -> Decimal:
    """Signed change to current_balance caused by one ledger line."""
    is_debit = EntryType(entry_type) is EntryType.DEBIT
    if is_debit_normal(account_type):
        return amount if is_debit else -amount
    return -amount if is_debit else amount


def reversal_delta(
    account_type: AccountType | str,
    entry_type: EntryType | str,
    amount: Decimal,
) -> Decimal:
    """Signed change that undoes balance_delta() for the same original line."""
    return balance_delta(account_type, EntryType(entry_type).opposite, amount)
