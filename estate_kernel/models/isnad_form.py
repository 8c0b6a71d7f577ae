"""
Module: estate_kernel.models.isnad_form
Responsibility: ORM persistence for ISNAD governmental approval forms, their
    routing stage, SLA deadline and return/cancellation bookkeeping.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/statuses.py only.

Invariants enforced:
    - A form that has left draft and is not terminal carries a non-null
      sla_deadline after every status-keyed transition.
    - Terminal forms (approved/rejected/cancelled) are never advanced and
      never touched by the SLA-breach sweep.
    - version_id guards concurrent load-mutate-save (optimistic locking).

Two writers share this row: IsnadWorkflowService.advance() (status-keyed,
derives stage and SLA from the routing tables) and
IsnadWorkflowService.advance_stage() (free-text stage label, step counter,
fixed SLA).  The SLA-breach sweep writes sla_status only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import DomainEventSource, TrackedBase, UUIDString
from estate_kernel.domain.statuses import IsnadStatus, SlaStatus


class IsnadForm(DomainEventSource, TrackedBase):
    """ISNAD approval form linked to one asset."""

    __tablename__ = "isnad_forms"

    __table_args__ = (
        UniqueConstraint("reference_number", name="uq_isnad_reference"),
        Index("idx_isnad_status", "status"),
        Index("idx_isnad_sla", "sla_status", "sla_deadline"),
    )

    reference_number: Mapped[str] = mapped_column(String(50), nullable=False)

    asset_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("assets.id"),
        nullable=False,
    )

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default=IsnadStatus.DRAFT.value,
    )

    # Queue/role label derived from status, or set freely by advance_stage
    current_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    current_step_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_assignee_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    sla_deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    sla_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SlaStatus.ON_TRACK.value,
    )

    # Changes-requested bookkeeping
    return_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    returned_by_stage: Mapped[str | None] = mapped_column(String(40), nullable=True)
    return_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Rejection / cancellation
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<IsnadForm {self.reference_number}: {self.status}>"
