"""
ReconciliationSweep -- one pass of the time-driven transitions.

Contract:
    ``run()`` executes every registered sub-task in registration order.
    Each sub-task gets its own session and transaction:

        open session -> task.run() -> commit if affected > 0, else rollback
                     -> publish events -> clear event buffers

Invariants enforced:
    - Sub-task isolation: an exception in one sub-task is rolled back,
      logged at ERROR with traceback, and recorded as a SweepSubtaskError
      in the report; the remaining sub-tasks still run in the same pass.
    - Idempotence: tasks re-check persisted state, so a repeated pass with
      the same clock commits nothing and emits no events.
    - Notifications are published only after the sub-task has committed.
    - All times come from the injected Clock.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import uuid4

from sqlalchemy.orm import Session

from estate_batch.tasks.base import SweepTaskRegistry, default_sweep_registry
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.events import DomainEvent
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.exceptions import SweepSubtaskError
from estate_kernel.logging_config import LogContext, get_logger
from estate_services.notification_dispatcher import NotificationDispatcher

logger = get_logger("batch.sweep")


@dataclass
class SweepReport:
    """Outcome of one sweep pass."""

    affected: dict[str, int] = field(default_factory=dict)
    events: list[DomainEvent] = field(default_factory=list)
    errors: list[SweepSubtaskError] = field(default_factory=list)

    @property
    def total_affected(self) -> int:
        return sum(self.affected.values())

    @property
    def succeeded(self) -> bool:
        return not self.errors


class ReconciliationSweep:
    """Runs the reconciliation sub-tasks once (``RunReconciliationSweep``)."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: NotificationDispatcher,
        policy: LifecyclePolicy,
        clock: Clock | None = None,
        registry: SweepTaskRegistry | None = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._policy = policy
        self._clock = clock or SystemClock()
        self._registry = registry if registry is not None else default_sweep_registry()

    @property
    def registry(self) -> SweepTaskRegistry:
        return self._registry

    def run(self) -> SweepReport:
        report = SweepReport()
        with LogContext.bind(correlation_id=str(uuid4()), command="reconciliation_sweep"):
            t0 = time.monotonic()
            logger.info(
                "sweep_started",
                extra={"as_of": self._clock.now(), "task_count": len(self._registry)},
            )

            for task in self._registry.tasks():
                with LogContext.bind(task_type=task.task_type):
                    self._run_task(task, report)

            logger.info(
                "sweep_completed",
                extra={
                    "affected": report.affected,
                    "event_count": len(report.events),
                    "error_count": len(report.errors),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
        return report

    def _run_task(self, task, report: SweepReport) -> None:
        session = self._session_factory()
        try:
            result = task.run(session, self._clock, self._policy)
            if result.affected > 0:
                session.commit()
            else:
                session.rollback()
        except Exception as exc:
            session.rollback()
            error = SweepSubtaskError(task.task_type, str(exc))
            report.errors.append(error)
            report.affected[task.task_type] = 0
            logger.error(
                "sweep_subtask_failed",
                extra={"error_code": error.code, "error": str(exc)},
                exc_info=True,
            )
            return
        finally:
            session.close()

        report.affected[task.task_type] = result.affected
        report.events.extend(result.events)
        if result.affected:
            logger.info(
                "sweep_subtask_committed",
                extra={"affected_rows": result.affected, "event_count": len(result.events)},
            )

        self._dispatcher.publish(result.events)
        for source in result.sources:
            source.clear_events()
