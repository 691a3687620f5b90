"""
ORM-level append-only enforcement for settlements and the change log.

Settlements are never edited or deleted; a wrong payment is corrected by
recording another one.  Rows of ``expense_changes`` are the expense's
history and are likewise frozen once written.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below intercept those events for the protected
entities:

    session.flush()
         |
         v
    [before_update] --> _check_*_update() --> ImmutabilityViolationError
    [before_delete] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Entity            | When immutable
------------------|-----------------------
Settlement        | ALWAYS (from creation)
ExpenseChangeRow  | ALWAYS (from creation)

Expenses and their splits are NOT protected here.  Expenses are edited in
place and splits are replaced wholesale; every such edit leaves a trail in
``expense_changes``.

Usage:

    from splitbill_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (tests only):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from splitbill_kernel.exceptions import ImmutabilityViolationError
from splitbill_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_settlement_update(mapper, connection, target):
    """Settlements are always immutable."""
    _block(
        "Settlement",
        target,
        "UPDATE",
        "Settlements are append-only; record a new settlement instead",
    )


def _check_settlement_delete(mapper, connection, target):
    _block(
        "Settlement",
        target,
        "DELETE",
        "Settlements cannot be deleted",
    )


def _check_expense_change_update(mapper, connection, target):
    """Expense history rows are always immutable."""
    _block(
        "ExpenseChangeRow",
        target,
        "UPDATE",
        "Expense history is append-only",
    )


def _check_expense_change_delete(mapper, connection, target):
    _block(
        "ExpenseChangeRow",
        target,
        "DELETE",
        "Expense history cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register the append-only event listeners.

    Call after the models are importable and before any database
    operations begin.  Safe to call more than once.
    """
    from splitbill_kernel.models.expense_change import ExpenseChangeRow
    from splitbill_kernel.models.settlement import Settlement

    for target, event_name, listener_fn in _listeners(Settlement, ExpenseChangeRow):
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the append-only event listeners.

    WARNING: Only use this in tests that need to violate immutability on
    purpose.
    """
    from splitbill_kernel.models.expense_change import ExpenseChangeRow
    from splitbill_kernel.models.settlement import Settlement

    for target, event_name, listener_fn in _listeners(Settlement, ExpenseChangeRow):
        _safe_remove_listener(target, event_name, listener_fn)


def _listeners(settlement_model, change_model):
    return (
        (settlement_model, "before_update", _check_settlement_update),
        (settlement_model, "before_delete", _check_settlement_delete),
        (change_model, "before_update", _check_expense_change_update),
        (change_model, "before_delete", _check_expense_change_delete),
    )
