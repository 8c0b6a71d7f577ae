"""
Module: estate_kernel.models.asset
Responsibility: ORM persistence for leasable real-estate assets and their
    registration/review status.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/statuses.py only.

Invariants enforced:
    - visible_to_investors is True only while status == completed.  The
      AssetWorkflowService forces it False on rejected/draft/incomplete_bulk.
    - status is written only by AssetWorkflowService.transition().
    - version_id guards concurrent load-mutate-save (optimistic locking).
"""

from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import DomainEventSource, TrackedBase
from estate_kernel.domain.statuses import AssetStatus


class Asset(DomainEventSource, TrackedBase):
    """
    Government real-estate asset offered for lease.

    Contract:
        The asset's status field is owned by AssetWorkflowService.  Other
        subsystems may read it but must not write it.
    """

    __tablename__ = "assets"

    __table_args__ = (
        UniqueConstraint("code", name="uq_asset_code"),
        Index("idx_asset_status", "status"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AssetStatus.DRAFT.value,
    )

    # Derived from status: only completed assets are listed to investors
    visible_to_investors: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Number of times the asset has been sent back to draft
    visibility_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    current_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Asset {self.code}: {self.status}>"
