"""
ORM-Level Immutability Enforcement.

===============================================================================
WHAT IS PROTECTED
===============================================================================

Entity          | When Immutable        | Fields
----------------|-----------------------|------------------------------------
AuditLogEntry   | ALWAYS                | every field; no UPDATE, no DELETE
Installment     | After insert          | amount_due, due_date, sequence_number
Contract        | After insert          | total_contract_amount

Status and payment fields of installments, and every other contract field,
remain mutable.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements are emitted:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected columns are detected through attribute history, so an UPDATE that
leaves them untouched (e.g. a status change) passes.

===============================================================================
USAGE
===============================================================================

    from estate_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from estate_kernel.exceptions import ImmutabilityViolationError
from estate_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_INSTALLMENT_FROZEN_FIELDS = ("amount_due", "due_date", "sequence_number")
_CONTRACT_FROZEN_FIELDS = ("total_contract_amount",)


def _changed_fields(target, fields: tuple[str, ...]) -> list[str]:
    changed = []
    for name in fields:
        history = get_history(target, name)
        if history.deleted and history.added and history.deleted[0] != history.added[0]:
            changed.append(name)
    return changed


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


# =============================================================================
# Audit log: always immutable
# =============================================================================


def _check_audit_log_update(mapper, connection, target):
    _block(
        "AuditLogEntry",
        target,
        "UPDATE",
        "Audit log entries are immutable and cannot be modified",
    )


def _check_audit_log_delete(mapper, connection, target):
    _block(
        "AuditLogEntry",
        target,
        "DELETE",
        "Audit log entries cannot be deleted",
    )


# =============================================================================
# Installment: schedule fields are write-once
# =============================================================================


def _check_installment_immutability(mapper, connection, target):
    changed = _changed_fields(target, _INSTALLMENT_FROZEN_FIELDS)
    if changed:
        _block(
            "Installment",
            target,
            "UPDATE",
            f"Installment schedule fields are immutable: {', '.join(changed)}",
        )


# =============================================================================
# Contract: total amount is fixed at creation
# =============================================================================


def _check_contract_immutability(mapper, connection, target):
    changed = _changed_fields(target, _CONTRACT_FROZEN_FIELDS)
    if changed:
        _block(
            "Contract",
            target,
            "UPDATE",
            "total_contract_amount is fixed at contract creation",
        )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    from estate_kernel.models.audit_log import AuditLogEntry
    from estate_kernel.models.contract import Contract, Installment

    for target, event_name, fn in _listeners(AuditLogEntry, Contract, Installment):
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def _listeners(audit_log, contract, installment):
    return (
        (audit_log, "before_update", _check_audit_log_update),
        (audit_log, "before_delete", _check_audit_log_delete),
        (installment, "before_update", _check_installment_immutability),
        (contract, "before_update", _check_contract_immutability),
    )


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate the rules.
    """
    from estate_kernel.models.audit_log import AuditLogEntry
    from estate_kernel.models.contract import Contract, Installment

    for target, event_name, fn in _listeners(AuditLogEntry, Contract, Installment):
        _safe_remove_listener(target, event_name, fn)
