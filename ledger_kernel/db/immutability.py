"""
ORM-Level Immutability Enforcement.

===============================================================================
WHAT IS PROTECTED
===============================================================================

Posted ledger lines and the reconciliation audit trail are append-only.
Corrections are made with new rows (a reversal transaction, a new log row),
never by editing old ones.

Entity              | Rule
--------------------|--------------------------------------------------------
LedgerEntry         | No UPDATE except is_reversed False->True together with
                    | reversal_entry_id None->value.  No DELETE.
ReconciliationLog   | No UPDATE.  No DELETE.
Account             | No DELETE (ledger lines reference it).

updated_at/updated_by_id are audit metadata and may always change.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_flush]  --> _check_account_deletion_before_flush()
    [before_update] --> _check_*_immutability()  --> ImmutabilityViolationError
    [before_delete] --> _check_*_delete()        --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Model imports are inline to avoid a db -> models import cycle.

===============================================================================
USAGE
===============================================================================

create_tables() registers the listeners.  Applications that build their
schema another way call register_immutability_listeners() once at startup.
Registration is idempotent.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, UOWTransaction
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

# The only fields a reversal may touch on an existing ledger line
_REVERSAL_FIELDS = frozenset({"is_reversed", "reversal_entry_id"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field=None):
    extra = {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "operation": operation,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _check_ledger_entry_immutability(mapper, connection, target):
    """
    Allow only the one-way reversal transition on a ledger line.

    Logic:
        1. Any field outside is_reversed/reversal_entry_id changing: block.
        2. is_reversed changing from True (un-reversing): block.
        3. reversal_entry_id replacing an existing value: block.
    """
    from ledger_kernel.models.ledger import LedgerEntry

    if not isinstance(target, LedgerEntry):
        return

    for field in _changed_fields(target):
        if field not in _REVERSAL_FIELDS:
            raise _blocked(
                "LedgerEntry",
                target.id,
                "UPDATE",
                f"Cannot modify field '{field}' on a posted ledger entry",
                field=field,
            )

    reversed_history = get_history(target, "is_reversed")
    if reversed_history.deleted and reversed_history.deleted[0]:
        raise _blocked(
            "LedgerEntry",
            target.id,
            "UPDATE",
            "A reversed ledger entry cannot be un-reversed",
            field="is_reversed",
        )

    link_history = get_history(target, "reversal_entry_id")
    if link_history.deleted and link_history.deleted[0] is not None:
        raise _blocked(
            "LedgerEntry",
            target.id,
            "UPDATE",
            "reversal_entry_id is already set",
            field="reversal_entry_id",
        )


def _check_ledger_entry_delete(mapper, connection, target):
    from ledger_kernel.models.ledger import LedgerEntry

    if not isinstance(target, LedgerEntry):
        return

    raise _blocked(
        "LedgerEntry",
        target.id,
        "DELETE",
        "Ledger entries cannot be deleted; post a reversal instead",
    )


def _check_reconciliation_log_immutability(mapper, connection, target):
    """Reconciliation log rows are immutable from creation."""
    from ledger_kernel.models.reconciliation_log import ReconciliationLog

    if not isinstance(target, ReconciliationLog):
        return

    changed = _changed_fields(target)
    if changed:
        raise _blocked(
            "ReconciliationLog",
            target.id,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on a reconciliation log row",
            field=changed[0],
        )


def _check_reconciliation_log_delete(mapper, connection, target):
    from ledger_kernel.models.reconciliation_log import ReconciliationLog

    if not isinstance(target, ReconciliationLog):
        return

    raise _blocked(
        "ReconciliationLog",
        target.id,
        "DELETE",
        "Reconciliation log rows cannot be deleted",
    )


def _check_account_deletion_before_flush(session, flush_context: UOWTransaction, instances):
    """
    Block account deletion before the flush plan is built.

    Runs at session level because mapper-level before_delete fires after
    dependent rows have already been scheduled.
    """
    from ledger_kernel.models.account import Account

    for obj in session.deleted:
        if isinstance(obj, Account):
            raise _blocked(
                "Account",
                obj.id,
                "DELETE",
                f"Account {obj.code} cannot be deleted",
            )


def _listeners():
    from ledger_kernel.models.ledger import LedgerEntry
    from ledger_kernel.models.reconciliation_log import ReconciliationLog

    return (
        (Session, "before_flush", _check_account_deletion_before_flush),
        (LedgerEntry, "before_update", _check_ledger_entry_immutability),
        (LedgerEntry, "before_delete", _check_ledger_entry_delete),
        (ReconciliationLog, "before_update", _check_reconciliation_log_immutability),
        (ReconciliationLog, "before_delete", _check_reconciliation_log_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call after the models are importable and before any database
    operations begin.  Calling twice has no further effect.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that need to violate the rules on
    purpose.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
