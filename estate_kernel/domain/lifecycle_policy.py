"""
Lifecycle policy value objects (``estate_kernel.domain.lifecycle_policy``).

Responsibility
--------------
Frozen, read-only routing tables consumed by the state-machine services,
the notification router and the reconciliation sweep:

* ISNAD status -> stage label, SLA days, notify role, breach role.
* Free-text stage label -> role for ``AdvanceIsnadStage`` notifications.
* Role names and the sweep actor.

The kernel never reads YAML.  ``estate_config`` builds a
``LifecyclePolicy`` once at process start and injects it.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from estate_kernel.domain.statuses import IsnadStatus

_EMPTY: Mapping = MappingProxyType({})


def freeze(mapping: Mapping | None) -> Mapping:
    """Return a read-only view of a copy of *mapping*."""
    if mapping is None:
        return _EMPTY
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class RoleNames:
    """Internal role names the core addresses notifications to."""

    admin: str = "Admin"
    contract_manager: str = "ContractManager"
    reviewer: str = "Reviewer"
    asset_manager: str = "AssetManager"


@dataclass(frozen=True)
class IsnadRouting:
    """Status-keyed and stage-keyed ISNAD lookup tables.

    Contract:
        ``stage_by_status`` and ``sla_days_by_status`` drive the status-keyed
        transition.  ``stage_role_by_label`` drives the free-text stage
        path.  Statuses absent from ``sla_days_by_status`` leave the
        deadline untouched.
    """

    stage_by_status: Mapping[IsnadStatus, str] = field(default_factory=lambda: _EMPTY)
    sla_days_by_status: Mapping[IsnadStatus, int] = field(default_factory=lambda: _EMPTY)
    notify_role_by_status: Mapping[IsnadStatus, str] = field(default_factory=lambda: _EMPTY)
    default_notify_role: str = "Reviewer"
    breach_role_by_status: Mapping[IsnadStatus, str] = field(default_factory=lambda: _EMPTY)
    valid_stage_labels: frozenset[str] = frozenset()
    stage_role_by_label: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    default_stage_role: str = "Reviewer"
    stage_advance_sla_days: int = 5

    def __post_init__(self) -> None:
        for name in (
            "stage_by_status",
            "sla_days_by_status",
            "notify_role_by_status",
            "breach_role_by_status",
            "stage_role_by_label",
        ):
            object.__setattr__(self, name, freeze(getattr(self, name)))
        object.__setattr__(self, "valid_stage_labels", frozenset(self.valid_stage_labels))

    def stage_for(self, status: IsnadStatus) -> str | None:
        return self.stage_by_status.get(status)

    def sla_days_for(self, status: IsnadStatus) -> int | None:
        return self.sla_days_by_status.get(status)

    def notify_role_for(self, status: IsnadStatus) -> str:
        return self.notify_role_by_status.get(status, self.default_notify_role)

    def breach_role_for(self, status: IsnadStatus) -> str | None:
        return self.breach_role_by_status.get(status)

    def role_for_stage_label(self, label: str) -> str:
        return self.stage_role_by_label.get(label, self.default_stage_role)

    def is_valid_stage_label(self, label: str) -> bool:
        return label in self.valid_stage_labels


@dataclass(frozen=True)
class LifecyclePolicy:
    """Everything the transition services need besides the clock."""

    isnad: IsnadRouting
    roles: RoleNames = field(default_factory=RoleNames)
    expiry_window_days: int = 30
    system_actor: str = "system"
