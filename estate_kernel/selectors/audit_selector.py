"""
Module: estate_kernel.selectors.audit_selector
Responsibility: Read access to the audit trail for one entity.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select

from estate_kernel.models.audit_log import AuditLogEntry
from estate_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AuditTrailEntry:
    """A single row of an entity's audit trail."""

    action_type: str
    actor: str
    occurred_at: datetime
    changes: dict[str, Any]


class AuditSelector(BaseSelector):
    def trail(self, entity_type: str, entity_id: UUID) -> tuple[AuditTrailEntry, ...]:
        """Return the entity's audit rows in the order they were appended."""
        stmt = (
            select(AuditLogEntry)
            .where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
            .order_by(AuditLogEntry.entity_seq)
        )
        return tuple(
            AuditTrailEntry(
                action_type=row.action_type,
                actor=row.actor,
                occurred_at=row.occurred_at,
                changes=dict(row.changes or {}),
            )
            for row in self.session.scalars(stmt)
        )

    def count(self, entity_type: str | None = None, action_type: str | None = None) -> int:
        stmt = select(func.count()).select_from(AuditLogEntry)
        if entity_type is not None:
            stmt = stmt.where(AuditLogEntry.entity_type == entity_type)
        if action_type is not None:
            stmt = stmt.where(AuditLogEntry.action_type == action_type)
        return self.session.execute(stmt).scalar_one()
