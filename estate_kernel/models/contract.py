"""
Module: estate_kernel.models.contract
Responsibility: ORM persistence for lease contracts and their installment
    payment plans.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/statuses.py only.

Invariants enforced:
    - total_contract_amount = annual_rental_amount * (1 + vat_rate/100)
      * contract_duration_years, computed once by
      ContractWorkflowService.create_contract() and immutable afterwards
      (ORM listener in db/immutability.py).
    - Installments are created in bulk exactly once, on activation.
      sequence_number is 1..N, unique per contract (uq_installment_sequence).
    - Installment.amount_due, due_date and sequence_number never change
      after insert (ORM listener in db/immutability.py).
    - version_id guards concurrent load-mutate-save on both tables.

Failure modes:
    - IntegrityError on duplicate contract_code or duplicate
      (contract_id, sequence_number).
    - ImmutabilityViolationError on attempts to rewrite protected amounts.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from estate_kernel.db.base import DomainEventSource, TrackedBase, UUIDString
from estate_kernel.domain.statuses import ContractStatus, InstallmentStatus

if TYPE_CHECKING:
    from estate_kernel.models.investor import Investor


class Contract(DomainEventSource, TrackedBase):
    """
    Lease contract between the authority and one investor for one asset.

    Contract:
        status is owned by ContractWorkflowService.transition().  The
        contract-expiry sweep task is the only other writer, and writes
        status/updated_at only.

    Non-goals:
        - No renewal or amendment model; a renewed lease is a new contract.
    """

    __tablename__ = "contracts"

    __table_args__ = (
        UniqueConstraint("contract_code", name="uq_contract_code"),
        Index("idx_contract_status_end", "status", "end_date"),
        Index("idx_contract_investor", "investor_id"),
    )

    # =========================================================================
    # Identification
    # =========================================================================

    contract_code: Mapped[str] = mapped_column(String(50), nullable=False)
    land_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    asset_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("assets.id"),
        nullable=False,
    )

    investor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("investors.id"),
        nullable=False,
    )

    investor: Mapped["Investor"] = relationship(
        "Investor",
        foreign_keys=[investor_id],
        lazy="selectin",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.DRAFT.value,
    )

    # =========================================================================
    # Financial terms
    # =========================================================================

    annual_rental_amount: Mapped[Decimal] = mapped_column(nullable=False)
    vat_rate: Mapped[Decimal] = mapped_column(nullable=False)
    total_annual_amount: Mapped[Decimal] = mapped_column(nullable=False)

    # Fixed at creation; see db/immutability.py
    total_contract_amount: Mapped[Decimal] = mapped_column(nullable=False)

    contract_duration_years: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="SAR")

    signing_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    installment_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    installment_frequency: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # =========================================================================
    # Cancellation / archival
    # =========================================================================

    cancellation_justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    installments: Mapped[list["Installment"]] = relationship(
        "Installment",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="Installment.sequence_number",
        lazy="selectin",
    )

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Contract {self.contract_code}: {self.status}>"


class Installment(TrackedBase):
    """
    One scheduled payment obligation of a contract.

    Contract:
        amount_due, due_date and sequence_number are write-once.  Only status
        and the payment fields (payment_date, partial_amount_paid,
        remaining_balance, receipt_file_url, notes) mutate.
    """

    __tablename__ = "installments"

    __table_args__ = (
        UniqueConstraint("contract_id", "sequence_number", name="uq_installment_sequence"),
        Index("idx_installment_status_due", "status", "due_date"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    contract: Mapped["Contract"] = relationship(
        "Contract",
        back_populates="installments",
        foreign_keys=[contract_id],
    )

    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_due: Mapped[Decimal] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InstallmentStatus.PENDING.value,
    )

    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    partial_amount_paid: Mapped[Decimal | None] = mapped_column(nullable=True)
    remaining_balance: Mapped[Decimal | None] = mapped_column(nullable=True)
    receipt_file_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Installment #{self.sequence_number} of {self.contract_id}: {self.status}>"
