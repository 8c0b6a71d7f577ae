"""
Sweep task: installment overdue.

Delegates to ``ContractWorkflowService.mark_installments_overdue`` across
all contracts, so the sweep and the on-demand command share one code path.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from estate_batch.tasks.base import SweepTaskResult
from estate_kernel.domain.clock import Clock
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.services.contract_workflow_service import ContractWorkflowService


class InstallmentOverdueTask:
    """Mark Pending installments past their due date as Overdue."""

    @property
    def task_type(self) -> str:
        return "installments.overdue"

    @property
    def description(self) -> str:
        return "Mark pending installments past their due date as overdue"

    def run(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy,
    ) -> SweepTaskResult:
        outcome = ContractWorkflowService(session, clock, policy).mark_installments_overdue(
            actor=policy.system_actor,
        )
        return SweepTaskResult(
            affected=outcome.detail.get("count", 0),
            events=outcome.events,
            sources=outcome.sources,
        )
