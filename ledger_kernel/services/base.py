"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session-handling contract.  Building-block
    services (LedgerService, BusinessEventPoster, InvoiceStatusService)
    only ``flush()``; the orchestrating services (ReconciliationService,
    AutoReconciler, PaymentService) own the commit or rollback of the
    units of work they define.

Architecture position:
    Kernel > Services -- imperative shell.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and an optional
        Clock (SystemClock when omitted).

    Non-goals:
        - Does NOT provide query-only (read) methods; those belong in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
