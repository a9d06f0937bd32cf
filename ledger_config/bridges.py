"""
Config -> Kernel bridges.

Functions that turn a LedgerConfig into kernel-compatible inputs.  They
live in ledger_config (the producer) because the kernel must never import
ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_auto_reconciler

    config = get_active_config()
    reconciler = build_auto_reconciler(session, config)
    summary = reconciler.auto_reconcile_all(actor_id)
"""

from __future__ import annotations

from ledger_config.schema import LedgerConfig
from ledger_engines.matching import MatchingEngine
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import PostingAccounts
from ledger_kernel.models.invoice import InvoiceStatus
from ledger_kernel.models.payment import PaymentMethod
from ledger_kernel.selectors.receivables_selector import ReceivablesSelector
from ledger_kernel.services.auto_reconciler import AutoReconciler
from ledger_kernel.services.matching_service import MatchingService
from ledger_kernel.services.payment_service import PaymentService
from ledger_kernel.services.posting_helpers import BusinessEventPoster
from ledger_kernel.services.reconciliation_service import ReconciliationService


def posting_accounts(config: LedgerConfig) -> PostingAccounts:
    """Account codes for BusinessEventPoster."""
    return PostingAccounts(
        bank=config.accounts.bank,
        accounts_receivable=config.accounts.accounts_receivable,
        sales_revenue=config.accounts.sales_revenue,
    )


def open_invoice_statuses(config: LedgerConfig) -> frozenset[InvoiceStatus]:
    return frozenset(InvoiceStatus(s) for s in config.matching.open_invoice_statuses)


def matching_engine(config: LedgerConfig) -> MatchingEngine:
    return MatchingEngine(amount_tolerance=config.matching.amount_tolerance)


def build_poster(session, config: LedgerConfig, clock: Clock | None = None) -> BusinessEventPoster:
    return BusinessEventPoster(session, clock, accounts=posting_accounts(config))


def build_receivables_selector(session, config: LedgerConfig) -> ReceivablesSelector:
    return ReceivablesSelector(session, open_statuses=open_invoice_statuses(config))


def build_matching_service(
    session, config: LedgerConfig, clock: Clock | None = None
) -> MatchingService:
    return MatchingService(
        session,
        clock,
        engine=matching_engine(config),
        receivables=build_receivables_selector(session, config),
    )


def build_reconciliation_service(
    session, config: LedgerConfig, clock: Clock | None = None
) -> ReconciliationService:
    return ReconciliationService(
        session,
        clock,
        poster=build_poster(session, config, clock),
        payment_method=PaymentMethod(config.default_payment_method),
    )


def build_payment_service(
    session, config: LedgerConfig, clock: Clock | None = None
) -> PaymentService:
    return PaymentService(session, clock, poster=build_poster(session, config, clock))


def build_auto_reconciler(
    session, config: LedgerConfig, clock: Clock | None = None
) -> AutoReconciler:
    """AutoReconciler wired with the configured matcher, accounts and threshold."""
    receivables = build_receivables_selector(session, config)
    return AutoReconciler(
        session,
        clock,
        matcher=MatchingService(
            session, clock, engine=matching_engine(config), receivables=receivables
        ),
        reconciler=build_reconciliation_service(session, config, clock),
        receivables=receivables,
        auto_apply_threshold=config.matching.auto_apply_threshold,
    )
