"""
estate_batch.tasks -- sweep task protocol, registry, and the three
time-driven reconciliation sub-tasks.
"""

from estate_batch.tasks.base import (
    SweepTask,
    SweepTaskRegistry,
    SweepTaskResult,
    default_sweep_registry,
)
from estate_batch.tasks.contract_expiry import ContractExpiryTask
from estate_batch.tasks.installment_overdue import InstallmentOverdueTask
from estate_batch.tasks.isnad_sla_breach import IsnadSlaBreachTask

__all__ = [
    "ContractExpiryTask",
    "InstallmentOverdueTask",
    "IsnadSlaBreachTask",
    "SweepTask",
    "SweepTaskRegistry",
    "SweepTaskResult",
    "default_sweep_registry",
]
