"""
AuditorService -- append-only audit trail of stage changes.

Responsibility:
    Appends one ``AuditLogEntry`` per successful transition, in the same
    transaction as the entity mutation and before commit.

Architecture position:
    Kernel > Services -- imperative shell, called by every state-machine
    service and by the sweep's contract-expiry task.

Invariants enforced:
    - Append-only: audit rows are never modified or deleted (ORM listener
      on the AuditLogEntry model).
    - ``changes`` is JSON-safe: UUIDs, dates, datetimes, Decimals and enums
      are converted to strings before persisting.

Failure modes:
    - ImmutabilityViolationError if a caller later mutates a flushed row.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.logging_config import get_logger
from estate_kernel.models.audit_log import AuditAction, AuditLogEntry

logger = get_logger("services.auditor")


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditorService:
    """
    Service for appending audit rows.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _next_entity_seq(self, entity_type: str, entity_id: UUID) -> int:
        # Writers to one entity are serialized by its version_id, and
        # uq_audit_entity_seq rejects a lost race.
        current = self._session.execute(
            select(func.max(AuditLogEntry.entity_seq)).where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
        ).scalar()
        return (current or 0) + 1

    def record(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any] | None,
        actor: str,
    ) -> AuditLogEntry:
        """
        Append one audit row and flush it.

        Postconditions:
            - The row is part of the caller's transaction.
        """
        entry = AuditLogEntry(
            entity_type=entity_type,
            entity_id=entity_id,
            entity_seq=self._next_entity_seq(entity_type, entity_id),
            action_type=action.value,
            changes=_json_safe(changes) if changes is not None else None,
            actor=actor,
            occurred_at=self._clock.now(),
        )
        self._session.add(entry)
        self._session.flush()

        logger.debug(
            "audit_recorded",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "action": action.value,
            },
        )
        return entry
