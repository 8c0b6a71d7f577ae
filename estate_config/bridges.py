"""
Config -> Kernel Bridges.

Functions that convert ``WorkflowSettings`` into kernel-compatible inputs.
These live in estate_config (the producer) because the kernel must NEVER
import estate_config.

Usage:
    from estate_config.bridges import build_lifecycle_policy

    settings = get_active_settings()
    policy = build_lifecycle_policy(settings)
"""

from __future__ import annotations

from estate_config.schema import WorkflowSettings
from estate_kernel.domain.lifecycle_policy import (
    IsnadRouting,
    LifecyclePolicy,
    RoleNames,
)


def build_lifecycle_policy(settings: WorkflowSettings) -> LifecyclePolicy:
    """Build the kernel's LifecyclePolicy from loaded settings."""
    isnad = settings.isnad
    return LifecyclePolicy(
        isnad=IsnadRouting(
            stage_by_status=isnad.stage_by_status,
            sla_days_by_status=isnad.sla_days_by_status,
            notify_role_by_status=isnad.notify_role_by_status,
            default_notify_role=isnad.default_notify_role,
            breach_role_by_status=isnad.breach_role_by_status,
            valid_stage_labels=frozenset(isnad.stage_role_by_label),
            stage_role_by_label=isnad.stage_role_by_label,
            default_stage_role=isnad.default_stage_role,
            stage_advance_sla_days=isnad.stage_advance_sla_days,
        ),
        roles=RoleNames(
            admin=settings.roles.admin,
            contract_manager=settings.roles.contract_manager,
            reviewer=settings.roles.reviewer,
            asset_manager=settings.roles.asset_manager,
        ),
        expiry_window_days=settings.expiry_window_days,
        system_actor=settings.system_actor,
    )
