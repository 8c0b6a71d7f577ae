"""
Module: estate_kernel.models.audit_log
Responsibility: ORM persistence for the append-only audit trail of stage
    changes.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit rows are append-only; no UPDATE or DELETE (ORM listener in
      db/immutability.py).
    - Exactly one row is appended per successful transition, in the same
      transaction as the entity mutation.

Audit relevance:
    AuditLogEntry IS the audit trail.  Every asset, ISNAD and contract
    transition, every installment status change, and every sweep mutation
    (actor "system") produces one row.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Asset lifecycle
    ASSET_STATUS_CHANGED = "asset_status_changed"

    # ISNAD lifecycle
    ISNAD_STATUS_CHANGED = "isnad_status_changed"
    ISNAD_STAGE_ADVANCED = "isnad_stage_advanced"
    ISNAD_SLA_BREACHED = "isnad_sla_breached"

    # Contract lifecycle
    CONTRACT_CREATED = "contract_created"
    CONTRACT_STATUS_CHANGED = "contract_status_changed"
    CONTRACT_EXPIRY_UPDATED = "contract_expiry_updated"
    INSTALLMENT_PLAN_GENERATED = "installment_plan_generated"

    # Installment lifecycle
    INSTALLMENT_STATUS_CHANGED = "installment_status_changed"
    INSTALLMENT_OVERDUE = "installment_overdue"


class AuditLogEntry(Base):
    """
    Immutable record of one state change.

    Contract:
        Rows are append-only.  ``changes`` holds a JSON-safe payload
        (from/to status plus the fields the transition wrote).
    """

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action_type"),
        Index("idx_audit_occurred", "occurred_at"),
        UniqueConstraint("entity_type", "entity_id", "entity_seq", name="uq_audit_entity_seq"),
    )

    # Type of entity being audited (e.g., "Asset", "IsnadForm", "Contract")
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # 1-based position in this entity's trail; unique per entity
    entity_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    action_type: Mapped[str] = mapped_column(String(50), nullable=False)

    changes: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Free-text actor: a user id, a display name, or "system" for the sweep
    actor: Mapped[str] = mapped_column(String(100), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action_type} on {self.entity_type}:{self.entity_id}>"
