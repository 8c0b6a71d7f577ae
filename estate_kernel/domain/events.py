"""
Domain events (``estate_kernel.domain.events``).

Responsibility
--------------
Immutable records of what a state transition did.  Transitions append them
to the aggregate's pending-event buffer in code order; the command layer
hands them to the notification dispatcher after the transaction commits.

Every event carries the data its notifications need (codes, names, the
submitter id, the investor email), so that routing is a pure function of
the event and never reopens the unit of work that produced it.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class DomainEvent:
    """Base for all domain events."""

    occurred_at: datetime

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


# =========================================================================
# Asset
# =========================================================================


@dataclass(frozen=True)
class AssetSubmitted(DomainEvent):
    asset_id: UUID
    asset_code: str
    asset_name: str
    submitted_by: str
    created_by: str


@dataclass(frozen=True)
class AssetApproved(DomainEvent):
    asset_id: UUID
    asset_code: str
    asset_name: str
    approved_by: str
    created_by: str


@dataclass(frozen=True)
class AssetRejected(DomainEvent):
    asset_id: UUID
    asset_code: str
    asset_name: str
    rejected_by: str
    created_by: str
    reason: str


# =========================================================================
# ISNAD
# =========================================================================


@dataclass(frozen=True)
class IsnadStatusChanged(DomainEvent):
    form_id: UUID
    reference_number: str
    previous_status: str
    new_status: str
    current_stage: str
    performed_by: str
    submitted_by: str
    reason: str | None = None


@dataclass(frozen=True)
class IsnadStageAdvanced(DomainEvent):
    form_id: UUID
    reference_number: str
    old_stage: str
    new_stage: str
    assignee_id: str | None = None


@dataclass(frozen=True)
class IsnadSlaBreached(DomainEvent):
    form_id: UUID
    reference_number: str
    status: str
    current_stage: str
    sla_deadline: datetime


# =========================================================================
# Contract / Installment
# =========================================================================


@dataclass(frozen=True)
class ContractCreated(DomainEvent):
    contract_id: UUID
    contract_code: str
    asset_id: UUID
    investor_id: UUID


@dataclass(frozen=True)
class ContractStatusChanged(DomainEvent):
    contract_id: UUID
    contract_code: str
    previous_status: str
    new_status: str
    reason: str | None = None


@dataclass(frozen=True)
class ContractActivated(DomainEvent):
    contract_id: UUID
    contract_code: str
    installment_count: int
    investor_email: str | None = None


@dataclass(frozen=True)
class ContractCancelled(DomainEvent):
    contract_id: UUID
    contract_code: str
    cancelled_by: str
    reason: str | None = None


@dataclass(frozen=True)
class ContractExpiring(DomainEvent):
    contract_id: UUID
    contract_code: str
    end_date: date


@dataclass(frozen=True)
class ContractExpired(DomainEvent):
    contract_id: UUID
    contract_code: str
    end_date: date


@dataclass(frozen=True)
class InstallmentOverdue(DomainEvent):
    installment_id: UUID
    contract_id: UUID
    contract_code: str
    sequence_number: int
    amount_due: Decimal
    due_date: date
    investor_email: str | None = None
