"""
Pure domain layer.

This module contains value objects and pure functions with NO dependencies
on:
- ORM (SQLAlchemy)
- Database
- I/O

Time enters only through an injected Clock.
"""

from estate_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from estate_kernel.domain.events import (
    AssetApproved,
    AssetRejected,
    AssetSubmitted,
    ContractActivated,
    ContractCancelled,
    ContractCreated,
    ContractExpired,
    ContractExpiring,
    ContractStatusChanged,
    DomainEvent,
    InstallmentOverdue,
    IsnadSlaBreached,
    IsnadStageAdvanced,
    IsnadStatusChanged,
)
from estate_kernel.domain.installment_plan import (
    InstallmentSpec,
    add_months,
    compute_contract_totals,
    generate_installment_plan,
)
from estate_kernel.domain.lifecycle_policy import (
    IsnadRouting,
    LifecyclePolicy,
    RoleNames,
)
from estate_kernel.domain.notification_routing import (
    InvestorEmail,
    NotificationIntent,
    NotificationKind,
    RoleNotice,
    UserNotice,
    route_event,
)
from estate_kernel.domain.statuses import (
    TERMINAL_ISNAD_STATUSES,
    AssetStatus,
    ContractStatus,
    InstallmentFrequency,
    InstallmentStatus,
    IsnadStatus,
    SlaStatus,
    parse_status,
)

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Statuses
    "AssetStatus",
    "IsnadStatus",
    "TERMINAL_ISNAD_STATUSES",
    "SlaStatus",
    "ContractStatus",
    "InstallmentStatus",
    "InstallmentFrequency",
    "parse_status",
    # Events
    "DomainEvent",
    "AssetSubmitted",
    "AssetApproved",
    "AssetRejected",
    "IsnadStatusChanged",
    "IsnadStageAdvanced",
    "IsnadSlaBreached",
    "ContractCreated",
    "ContractStatusChanged",
    "ContractActivated",
    "ContractCancelled",
    "ContractExpiring",
    "ContractExpired",
    "InstallmentOverdue",
    # Policy
    "IsnadRouting",
    "LifecyclePolicy",
    "RoleNames",
    # Installment plan
    "InstallmentSpec",
    "add_months",
    "compute_contract_totals",
    "generate_installment_plan",
    # Notification routing
    "NotificationKind",
    "NotificationIntent",
    "UserNotice",
    "RoleNotice",
    "InvestorEmail",
    "route_event",
]
