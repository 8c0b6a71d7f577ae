"""
SweepTask protocol, result type, and SweepTaskRegistry.

Contract:
    ``SweepTask`` is the interface every reconciliation sub-task implements.
    ``SweepTaskRegistry`` stores registered tasks keyed by ``task_type`` and
    preserves registration order, which is the order a sweep pass runs them.
    ``default_sweep_registry()`` returns the three standard sub-tasks.

Invariants enforced:
    - One task per ``task_type`` string.
    - Tasks flush but never commit; the sweep owns each sub-task's
      transaction.
    - Every predicate re-checks persisted state, so a task run twice with
      the same clock finds nothing the second time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session

from estate_kernel.db.base import DomainEventSource
from estate_kernel.domain.clock import Clock
from estate_kernel.domain.events import DomainEvent
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy


@dataclass(frozen=True)
class SweepTaskResult:
    """What one sub-task changed.

    ``affected`` is the number of rows moved; the sweep commits only when
    it is positive.  ``sources`` are the aggregates whose event buffers are
    cleared after dispatch.
    """

    affected: int = 0
    events: tuple[DomainEvent, ...] = ()
    sources: tuple[DomainEventSource, ...] = field(default=(), repr=False)


@runtime_checkable
class SweepTask(Protocol):
    """Protocol for one time-driven reconciliation sub-task.

    Non-goals:
        - Does NOT manage transactions.
        - Does NOT deliver notifications; events are returned.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def run(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy,
    ) -> SweepTaskResult:
        """Apply every due transition visible at ``clock.now()``."""
        ...


class SweepTaskRegistry:
    """Registry mapping task_type strings to SweepTask implementations.

    Contract:
        - ``register()`` adds a task; raises ValueError on duplicate.
        - ``get()`` retrieves by task_type; raises KeyError if missing.
        - ``tasks()`` returns the tasks in registration order.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, SweepTask] = {}

    def register(self, task: SweepTask) -> None:
        """Register a sweep task.

        Raises:
            ValueError: If a task with the same task_type is already registered.
        """
        if task.task_type in self._tasks:
            raise ValueError(
                f"Task type '{task.task_type}' is already registered"
            )
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> SweepTask:
        """Retrieve a registered task by task_type.

        Raises:
            KeyError: If no task is registered for the given task_type.
        """
        try:
            return self._tasks[task_type]
        except KeyError:
            raise KeyError(
                f"No task registered for type '{task_type}'. "
                f"Available: {sorted(self._tasks.keys())}"
            ) from None

    def tasks(self) -> tuple[SweepTask, ...]:
        return tuple(self._tasks.values())

    def list_tasks(self) -> tuple[str, ...]:
        """Return all registered task_type strings, in run order."""
        return tuple(self._tasks.keys())

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks


def default_sweep_registry() -> SweepTaskRegistry:
    """Contract expiry, installment overdue, ISNAD SLA breach, in that order."""
    from estate_batch.tasks.contract_expiry import ContractExpiryTask
    from estate_batch.tasks.installment_overdue import InstallmentOverdueTask
    from estate_batch.tasks.isnad_sla_breach import IsnadSlaBreachTask

    registry = SweepTaskRegistry()
    registry.register(ContractExpiryTask())
    registry.register(InstallmentOverdueTask())
    registry.register(IsnadSlaBreachTask())
    return registry
