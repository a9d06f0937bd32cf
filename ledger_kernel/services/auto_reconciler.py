"""
AutoReconciler -- batch matching and reconciliation of pending bank lines.

Responsibility:
    Walks every PENDING statement line oldest-first.  High-confidence
    matches are reconciled automatically; everything else is parked as
    UNMATCHED with a log row for manual review.

Architecture position:
    Kernel > Services -- orchestrator over MatchingService and
    ReconciliationService.  Each line is its own unit of work.

Invariants enforced:
    - Lines are processed strictly one after another.
    - A failure on one line is rolled back, counted as failed, and does not
      stop the batch.
    - Unmatched lines get no ledger post.
    - matched + unmatched + failed == total.
"""

from uuid import UUID

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import AutoReconcileSummary, ReconcileDetail, ReconcileStatus
from ledger_kernel.exceptions import NotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.bank_transaction import BankTransaction, BankTransactionStatus
from ledger_kernel.models.reconciliation_log import (
    ReconciliationAction,
    ReconciliationLog,
)
from ledger_kernel.selectors.receivables_selector import ReceivablesSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.matching_service import MatchingService
from ledger_kernel.services.reconciliation_service import ReconciliationService

logger = get_logger("services.auto_reconciler")

DEFAULT_AUTO_APPLY_THRESHOLD = 80
UNMATCHED_FALLBACK_REASON = "Could not auto-match"


class AutoReconciler(BaseService[BankTransaction]):
    """
    Runs the matcher over the pending queue and applies confident matches.

    Contract:
        Commits after every line.  Never raises for a per-line failure.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        matcher: MatchingService | None = None,
        reconciler: ReconciliationService | None = None,
        receivables: ReceivablesSelector | None = None,
        auto_apply_threshold: int = DEFAULT_AUTO_APPLY_THRESHOLD,
    ):
        super().__init__(session, clock)
        self.receivables = receivables or ReceivablesSelector(session)
        self.matcher = matcher or MatchingService(
            session, self.clock, receivables=self.receivables
        )
        self.reconciler = reconciler or ReconciliationService(session, self.clock)
        self.auto_apply_threshold = auto_apply_threshold

    def auto_reconcile_all(self, actor_id: UUID) -> AutoReconcileSummary:
        pending = self.receivables.pending_bank_transactions()
        logger.info("auto_reconcile_started", extra={"pending_count": len(pending)})

        details: list[ReconcileDetail] = []
        for bank_transaction_id, statement_reference in pending:
            with LogContext.bind(bank_transaction_id=bank_transaction_id, actor_id=actor_id):
                try:
                    detail = self._process(bank_transaction_id, statement_reference, actor_id)
                except Exception as exc:
                    self.session.rollback()
                    logger.error(
                        "auto_reconcile_line_failed",
                        extra={"statement_reference": statement_reference},
                        exc_info=True,
                    )
                    detail = ReconcileDetail(
                        bank_transaction_id=bank_transaction_id,
                        statement_reference=statement_reference,
                        status=ReconcileStatus.FAILED,
                        error=str(exc),
                    )
            details.append(detail)

        summary = AutoReconcileSummary(
            total=len(pending),
            matched=sum(1 for d in details if d.status is ReconcileStatus.MATCHED),
            unmatched=sum(1 for d in details if d.status is ReconcileStatus.UNMATCHED),
            failed=sum(1 for d in details if d.status is ReconcileStatus.FAILED),
            details=tuple(details),
        )
        logger.info(
            "auto_reconcile_completed",
            extra={
                "total": summary.total,
                "matched": summary.matched,
                "unmatched": summary.unmatched,
                "failed": summary.failed,
            },
        )
        return summary

    def _process(
        self,
        bank_transaction_id: UUID,
        statement_reference: str,
        actor_id: UUID,
    ) -> ReconcileDetail:
        match = self.matcher.auto_match(bank_transaction_id)

        if (
            match.success
            and match.confidence >= self.auto_apply_threshold
            and match.customer_id is not None
        ):
            self.reconciler.reconcile(
                bank_transaction_id,
                match.customer_id,
                match.invoice_id,
                actor_id,
                notes=f"Auto-matched: {match.reason} (Confidence: {match.confidence}%)",
                action=ReconciliationAction.AUTO_MATCHED,
            )
            return ReconcileDetail(
                bank_transaction_id=bank_transaction_id,
                statement_reference=statement_reference,
                status=ReconcileStatus.MATCHED,
                confidence=match.confidence,
                reason=match.reason,
            )

        reason = match.reason or UNMATCHED_FALLBACK_REASON
        self._mark_unmatched(bank_transaction_id, actor_id, reason)
        return ReconcileDetail(
            bank_transaction_id=bank_transaction_id,
            statement_reference=statement_reference,
            status=ReconcileStatus.UNMATCHED,
            confidence=match.confidence,
            reason=match.reason,
        )

    def _mark_unmatched(self, bank_transaction_id: UUID, actor_id: UUID, reason: str) -> None:
        bank_txn = self.session.get(BankTransaction, bank_transaction_id)
        if bank_txn is None:
            raise NotFoundError("BankTransaction", str(bank_transaction_id))

        bank_txn.status = BankTransactionStatus.UNMATCHED.value
        bank_txn.updated_by_id = actor_id
        self.session.add(
            ReconciliationLog(
                bank_transaction_id=bank_transaction_id,
                action=ReconciliationAction.UNMATCHED.value,
                reason=reason,
                created_by_id=actor_id,
            )
        )
        self.session.commit()
        logger.info("bank_transaction_unmatched", extra={"reason": reason})
