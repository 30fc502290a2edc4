"""
ORM-Level Immutability Enforcement for the audit trail.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  Every audit model gets a listener that refuses the operation:

    session.flush()
         |
         v
    [before_update event] --> _refuse_update() --> ImmutabilityViolationError
         |
    [before_delete event] --> _refuse_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only INSERTs ever get here)

The exception aborts the flush; ``session_scope`` rolls the transaction back.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | When Immutable
----------------------|-----------------------
FailsafeEvent         | ALWAYS (from creation)
BlockedChargeAttempt  | ALWAYS (from creation)
OverrideRecord        | ALWAYS (from creation)
KillSwitchEvent       | ALWAYS (from creation)

Bulk ``session.execute(update(...))`` statements bypass mapper events.  No
code path in this package issues them against audit tables.

===============================================================================
USAGE
===============================================================================

    from integrity_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent, called by ControlPlane

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from integrity_kernel.exceptions import ImmutabilityViolationError
from integrity_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _audit_models():
    from integrity_kernel.models import (
        BlockedChargeAttempt,
        FailsafeEvent,
        KillSwitchEvent,
        OverrideRecord,
    )

    return (FailsafeEvent, BlockedChargeAttempt, OverrideRecord, KillSwitchEvent)


def _refuse(target, operation: str, verb: str):
    entity_type = type(target).__name__
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
        reason=f"Audit records are append-only and cannot be {verb}",
    )


def _refuse_update(mapper, connection, target):
    _refuse(target, "UPDATE", "modified")


def _refuse_delete(mapper, connection, target):
    _refuse(target, "DELETE", "deleted")


def register_immutability_listeners():
    """Register append-only listeners on every audit model.  Idempotent."""
    for model in _audit_models():
        if not event.contains(model, "before_update", _refuse_update):
            event.listen(model, "before_update", _refuse_update)
        if not event.contains(model, "before_delete", _refuse_delete):
            event.listen(model, "before_delete", _refuse_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for model in _audit_models():
        _safe_remove_listener(model, "before_update", _refuse_update)
        _safe_remove_listener(model, "before_delete", _refuse_delete)
