"""Read-only query selectors returning DTOs."""

from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.receivables_selector import ReceivablesSelector

__all__ = ["LedgerSelector", "ReceivablesSelector"]
