"""Kernel services: posting, matching, reconciliation, refunds."""

from ledger_kernel.services.auto_reconciler import AutoReconciler
from ledger_kernel.services.invoice_status import (
    InvoiceStatusService,
    apply_payment_to_invoice,
)
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.matching_service import MatchingService
from ledger_kernel.services.payment_service import PaymentService
from ledger_kernel.services.posting_helpers import BusinessEventPoster
from ledger_kernel.services.reconciliation_service import ReconciliationService

__all__ = [
    "AutoReconciler",
    "BusinessEventPoster",
    "InvoiceStatusService",
    "LedgerService",
    "MatchingService",
    "PaymentService",
    "ReconciliationService",
    "apply_payment_to_invoice",
]
