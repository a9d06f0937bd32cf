"""
MatchingService -- proposes a customer/invoice for one bank statement line.

Responsibility:
    Loads the statement line, checks it is still PENDING, and runs the
    MatchingEngine cascade against the database through ReceivablesSelector.

Architecture position:
    Kernel > Services.  Read-only: never writes, never flushes.

Failure modes:
    - NotFoundError: no bank transaction with this id.
    - AlreadyProcessedError: the line is not PENDING.
"""

from uuid import UUID

from ledger_engines.matching import MatchingEngine, MatchResult
from ledger_kernel.domain.clock import Clock
from ledger_kernel.exceptions import AlreadyProcessedError, NotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.bank_transaction import BankTransaction, BankTransactionStatus
from ledger_kernel.selectors.receivables_selector import ReceivablesSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.matching")


class MatchingService(BaseService[BankTransaction]):
    """Runs auto-matching for a single PENDING statement line."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        engine: MatchingEngine | None = None,
        receivables: ReceivablesSelector | None = None,
    ):
        super().__init__(session, clock)
        self.engine = engine or MatchingEngine()
        self.receivables = receivables or ReceivablesSelector(session)

    def auto_match(self, bank_transaction_id: UUID) -> MatchResult:
        bank_txn = self.session.get(BankTransaction, bank_transaction_id)
        if bank_txn is None:
            raise NotFoundError("BankTransaction", str(bank_transaction_id))

        status = BankTransactionStatus(bank_txn.status)
        if status is not BankTransactionStatus.PENDING:
            raise AlreadyProcessedError(str(bank_transaction_id), status.value)

        with LogContext.bind(bank_transaction_id=bank_transaction_id):
            result = self.engine.match(bank_txn.reference, bank_txn.amount, self.receivables)
            logger.info(
                "bank_transaction_match_evaluated",
                extra={
                    "statement_reference": bank_txn.statement_reference,
                    "success": result.success,
                    "match_type": result.match_type.value,
                    "confidence": result.confidence,
                },
            )
        return result
