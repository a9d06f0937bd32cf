"""
Module: ledger_engines
Responsibility:
    Calculation engines that sit above the kernel's domain layer.  Engines
    hold no session and read no configuration; services hand them ports
    and parameters.

Usage:
    from ledger_engines.matching import MatchingEngine, MatchResult, MatchType
"""

from ledger_engines.matching import (
    CustomerCodeStrategy,
    CustomerNameStrategy,
    CustomerSnapshot,
    InvoiceNumberStrategy,
    InvoiceSnapshot,
    MatchContext,
    MatchingEngine,
    MatchResult,
    MatchStrategy,
    MatchType,
    ReceivablesDirectory,
    UniqueAmountStrategy,
)

__all__ = [
    "CustomerCodeStrategy",
    "CustomerNameStrategy",
    "CustomerSnapshot",
    "InvoiceNumberStrategy",
    "InvoiceSnapshot",
    "MatchContext",
    "MatchingEngine",
    "MatchResult",
    "MatchStrategy",
    "MatchType",
    "ReceivablesDirectory",
    "UniqueAmountStrategy",
]
