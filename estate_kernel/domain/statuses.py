"""
Lifecycle status enums (``estate_kernel.domain.statuses``).

Pure value types shared by models, services and the sweep.  Values are the
persisted column strings; ``parse_status`` accepts either the value
(``"in_review"``), the enum member, or the PascalCase name used by API
callers (``"InReview"``), case-insensitively.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar


class AssetStatus(str, Enum):
    """Asset registration lifecycle."""

    DRAFT = "draft"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    REJECTED = "rejected"
    INCOMPLETE_BULK = "incomplete_bulk"


class IsnadStatus(str, Enum):
    """ISNAD governmental approval pipeline."""

    DRAFT = "draft"
    PENDING_VERIFICATION = "pending_verification"
    VERIFICATION_DUE = "verification_due"
    CHANGES_REQUESTED = "changes_requested"
    VERIFIED_FILLED = "verified_filled"
    INVESTMENT_AGENCY_REVIEW = "investment_agency_review"
    IN_PACKAGE = "in_package"
    PENDING_CEO = "pending_ceo"
    PENDING_MINISTER = "pending_minister"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


TERMINAL_ISNAD_STATUSES: frozenset[IsnadStatus] = frozenset({
    IsnadStatus.APPROVED,
    IsnadStatus.REJECTED,
    IsnadStatus.CANCELLED,
})


class SlaStatus(str, Enum):
    ON_TRACK = "on_track"
    BREACHED = "breached"
    COMPLETED = "completed"


class ContractStatus(str, Enum):
    """Lease contract lifecycle."""

    DRAFT = "draft"
    INCOMPLETE = "incomplete"
    ACTIVE = "active"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    OVERDUE = "overdue"
    PARTIAL = "partial"
    PAID = "paid"


class InstallmentFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"


E = TypeVar("E", bound=Enum)


def _fold(text: str) -> str:
    return text.replace("_", "").replace("-", "").replace(" ", "").lower()


def parse_status(enum_cls: type[E], raw: object) -> E | None:
    """Resolve ``raw`` to a member of ``enum_cls``, or None if unrecognized."""
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        pass
    folded = _fold(raw)
    for member in enum_cls:
        if folded in (_fold(member.name), _fold(str(member.value))):
            return member
    return None
