"""
WorkflowSettings schema.

Frozen dataclasses that YAML settings files are parsed into by the loader.
Every mapping is a ``MappingProxyType``: settings are built once at process
start and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from estate_kernel.domain.statuses import IsnadStatus


@dataclass(frozen=True)
class SweepSettings:
    """Reconciliation sweep scheduling."""

    interval_hours: float = 24
    initial_delay_seconds: float = 0

    @property
    def interval_seconds(self) -> float:
        return self.interval_hours * 3600


@dataclass(frozen=True)
class RoleSettings:
    admin: str
    contract_manager: str
    reviewer: str
    asset_manager: str


@dataclass(frozen=True)
class IsnadSettings:
    """ISNAD routing tables as loaded from YAML."""

    stage_by_status: Mapping[IsnadStatus, str]
    sla_days_by_status: Mapping[IsnadStatus, int]
    notify_role_by_status: Mapping[IsnadStatus, str]
    default_notify_role: str
    breach_role_by_status: Mapping[IsnadStatus, str]
    stage_advance_sla_days: int
    stage_role_by_label: Mapping[str, str]
    default_stage_role: str


@dataclass(frozen=True)
class WorkflowSettings:
    """
    The complete runtime configuration of the lifecycle core.

    ``checksum`` is the SHA-256 of the canonical JSON of the source YAML,
    so that a log line can tie behaviour to the exact settings version.
    """

    version: int
    database_url: str
    sweep: SweepSettings
    expiry_window_days: int
    system_actor: str
    roles: RoleSettings
    isnad: IsnadSettings
    checksum: str
    source: str
