"""
ledger_engines.matching -- Bank statement line matching cascade.

Responsibility:
    Given a statement line's free-text reference and amount, identify the
    customer and (where possible) the invoice it pays.  Produces a scored
    MatchResult; never writes anything.

Architecture position:
    Engines -- calculation layer.  Reads receivables only through the
    ReceivablesDirectory port passed in by the caller; no session, no
    clock, no configuration files.

Invariants enforced:
    - Strategies run in fixed priority order and the first one that
      produces a result wins.  A later, noisier strategy never overrides
      an earlier one.
    - All amount comparisons use Decimal arithmetic.
    - Only invoices in an open status (SENT, PARTIALLY_PAID, OVERDUE) are
      ever proposed; the directory applies that filter.

Strategy tiers:

    Strategy                | Hint in reference         | Match type | Confidence
    ------------------------|---------------------------|------------|-----------
    InvoiceNumberStrategy   | INV-dddd-dddd             | EXACT      | 95
                            |                           | PARTIAL    | 90
    CustomerCodeStrategy    | CUST-dddd                 | FUZZY      | 80 / 70
    CustomerNameStrategy    | customer name words       | FUZZY      | 65
    UniqueAmountStrategy    | (none, amount only)       | FUZZY      | 60

Usage:
    from ledger_engines.matching import MatchingEngine

    engine = MatchingEngine(amount_tolerance=Decimal("0.01"))
    result = engine.match(reference, amount, directory)
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol
from uuid import UUID

from ledger_kernel.domain.money import to_decimal, tolerance_band
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.matching")

INVOICE_NUMBER_PATTERN = re.compile(r"INV[- ]?(\d{4})[- ]?(\d{4})", re.IGNORECASE)
CUSTOMER_CODE_PATTERN = re.compile(r"CUST[- ]?(\d{4})", re.IGNORECASE)

# Words of a customer name shorter than this are ignored ("LTD", "AND", ...)
SIGNIFICANT_WORD_MIN_LENGTH = 4

NO_MATCH_REASON = "No matching customer or invoice found"


class MatchType(str, Enum):
    """How strongly a statement line was tied to a receivable."""

    EXACT = "EXACT"
    PARTIAL = "PARTIAL"
    FUZZY = "FUZZY"
    NONE = "NONE"


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of matching one statement line.

    Guarantees:
        - success is False only for match_type NONE, with confidence 0.
        - invoice_id is only set together with customer_id.
    """

    success: bool
    match_type: MatchType
    confidence: int
    reason: str
    customer_id: UUID | None = None
    invoice_id: UUID | None = None
    matched_amount: Decimal | None = None

    @classmethod
    def no_match(cls, reason: str = NO_MATCH_REASON) -> MatchResult:
        return cls(
            success=False,
            match_type=MatchType.NONE,
            confidence=0,
            reason=reason,
        )


@dataclass(frozen=True)
class InvoiceSnapshot:
    """Read-only view of an open invoice as seen by the strategies."""

    id: UUID
    invoice_number: str
    customer_id: UUID
    balance_amount: Decimal
    due_date: date
    status: str


@dataclass(frozen=True)
class CustomerSnapshot:
    id: UUID
    customer_code: str
    name: str
    is_active: bool = True


class ReceivablesDirectory(Protocol):
    """
    Read-only lookup port the strategies query.

    Every invoice returned is in an open status.  Sequences are ordered:
    customers by customer_code, invoices by due_date ascending.
    """

    def open_invoice_by_number(self, invoice_number: str) -> InvoiceSnapshot | None:
        ...

    def active_customer_by_code(self, customer_code: str) -> CustomerSnapshot | None:
        ...

    def active_customers(self) -> Sequence[CustomerSnapshot]:
        ...

    def open_invoices_for_customer(self, customer_id: UUID) -> Sequence[InvoiceSnapshot]:
        ...

    def open_invoices(self) -> Sequence[InvoiceSnapshot]:
        ...


@dataclass(frozen=True)
class MatchContext:
    """Normalized inputs shared by every strategy."""

    reference: str
    amount: Decimal
    tolerance: Decimal

    @classmethod
    def build(
        cls,
        reference: str | None,
        amount: Decimal | int | str | float,
        tolerance: Decimal | int | str | float,
    ) -> MatchContext:
        return cls(
            reference=(reference or "").upper().strip(),
            amount=to_decimal(amount),
            tolerance=to_decimal(tolerance),
        )

    def amount_band(self) -> tuple[Decimal, Decimal]:
        """Balances within tolerance of the line amount."""
        return tolerance_band(self.amount, self.tolerance)

    def in_amount_band(self, balance: Decimal) -> bool:
        low, high = self.amount_band()
        return low <= balance <= high


class MatchStrategy(ABC):
    """
    One tier of the cascade.

    A strategy returns a MatchResult when it is confident enough to stop
    the cascade, or None to let the next strategy try.
    """

    name: str = "strategy"

    @abstractmethod
    def match(
        self,
        context: MatchContext,
        directory: ReceivablesDirectory,
    ) -> MatchResult | None:
        ...


def normalize_invoice_number(token_match: re.Match) -> str:
    return f"INV-{token_match.group(1)}-{token_match.group(2)}"


def normalize_customer_code(token_match: re.Match) -> str:
    return f"CUST-{token_match.group(1)}"


class InvoiceNumberStrategy(MatchStrategy):
    """Invoice number quoted in the reference."""

    name = "invoice_number"

    def match(self, context, directory):
        token = INVOICE_NUMBER_PATTERN.search(context.reference)
        if token is None:
            return None

        invoice = directory.open_invoice_by_number(normalize_invoice_number(token))
        if invoice is None:
            return None

        balance = invoice.balance_amount
        if abs(context.amount - balance) <= balance * context.tolerance:
            return MatchResult(
                success=True,
                match_type=MatchType.EXACT,
                confidence=95,
                reason=f"Matched invoice number {invoice.invoice_number}",
                customer_id=invoice.customer_id,
                invoice_id=invoice.id,
                matched_amount=context.amount,
            )
        if context.amount <= balance:
            return MatchResult(
                success=True,
                match_type=MatchType.PARTIAL,
                confidence=90,
                reason=f"Partial payment for invoice {invoice.invoice_number}",
                customer_id=invoice.customer_id,
                invoice_id=invoice.id,
                matched_amount=context.amount,
            )
        # Overpayment beyond tolerance: let the weaker strategies decide
        return None


class CustomerCodeStrategy(MatchStrategy):
    """Customer code quoted in the reference, applied to the oldest-due invoice."""

    name = "customer_code"

    def match(self, context, directory):
        token = CUSTOMER_CODE_PATTERN.search(context.reference)
        if token is None:
            return None

        customer = directory.active_customer_by_code(normalize_customer_code(token))
        if customer is None:
            return None

        invoices = directory.open_invoices_for_customer(customer.id)
        if invoices:
            oldest = invoices[0]
            if context.amount <= oldest.balance_amount * (1 + context.tolerance):
                return MatchResult(
                    success=True,
                    match_type=MatchType.FUZZY,
                    confidence=80,
                    reason=(
                        f"Matched customer {customer.customer_code}, "
                        "applied to oldest invoice"
                    ),
                    customer_id=customer.id,
                    invoice_id=oldest.id,
                    matched_amount=context.amount,
                )

        return MatchResult(
            success=True,
            match_type=MatchType.FUZZY,
            confidence=70,
            reason=f"Matched customer {customer.customer_code}, no specific invoice",
            customer_id=customer.id,
            matched_amount=context.amount,
        )


def significant_words(name: str) -> list[str]:
    return [
        word
        for word in name.upper().split()
        if len(word) >= SIGNIFICANT_WORD_MIN_LENGTH
    ]


def name_matches_reference(name: str, reference: str) -> bool:
    """At least one, and at least half, of the name's significant words appear."""
    words = significant_words(name)
    matched = [word for word in words if word in reference]
    return len(matched) > 0 and len(matched) * 2 >= len(words)


class CustomerNameStrategy(MatchStrategy):
    """Customer name words in the reference plus an invoice of about that amount."""

    name = "customer_name"

    def match(self, context, directory):
        for customer in directory.active_customers():
            if not name_matches_reference(customer.name, context.reference):
                continue

            for invoice in directory.open_invoices_for_customer(customer.id):
                if context.in_amount_band(invoice.balance_amount):
                    return MatchResult(
                        success=True,
                        match_type=MatchType.FUZZY,
                        confidence=65,
                        reason="Fuzzy matched customer name and amount",
                        customer_id=customer.id,
                        invoice_id=invoice.id,
                        matched_amount=context.amount,
                    )
        return None


class UniqueAmountStrategy(MatchStrategy):
    """Exactly one open invoice anywhere with a balance near the amount."""

    name = "unique_amount"

    def match(self, context, directory):
        candidates = [
            invoice
            for invoice in directory.open_invoices()
            if context.in_amount_band(invoice.balance_amount)
        ]
        if len(candidates) != 1:
            return None

        invoice = candidates[0]
        return MatchResult(
            success=True,
            match_type=MatchType.FUZZY,
            confidence=60,
            reason=f"Unique amount match: {invoice.invoice_number}",
            customer_id=invoice.customer_id,
            invoice_id=invoice.id,
            matched_amount=context.amount,
        )


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (
    InvoiceNumberStrategy(),
    CustomerCodeStrategy(),
    CustomerNameStrategy(),
    UniqueAmountStrategy(),
)


class MatchingEngine:
    """
    Runs the strategy cascade for one statement line.

    Contract:
        No writes and no clock access.  The same reference, amount and
        directory contents always produce the same result.
    Non-goals:
        - Does not check the bank line's status; MatchingService does.
        - Does not apply the match; ReconciliationService does.
    """

    def __init__(
        self,
        amount_tolerance: Decimal = Decimal("0.01"),
        strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.amount_tolerance = to_decimal(amount_tolerance)
        self.strategies = tuple(strategies)

    def match(
        self,
        reference: str | None,
        amount: Decimal | int | str | float,
        directory: ReceivablesDirectory,
    ) -> MatchResult:
        t0 = time.monotonic()
        context = MatchContext.build(reference, amount, self.amount_tolerance)

        for strategy in self.strategies:
            result = strategy.match(context, directory)
            if result is not None:
                logger.info("match_found", extra={
                    "strategy": strategy.name,
                    "match_type": result.match_type.value,
                    "confidence": result.confidence,
                    "amount": str(context.amount),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                })
                return result

        logger.info("match_not_found", extra={
            "amount": str(context.amount),
            "strategies_tried": len(self.strategies),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return MatchResult.no_match()
