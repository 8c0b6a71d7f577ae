"""
Sweep task: contract expiry.

Active contracts whose end date falls inside the expiry window become
Expiring; Active or Expiring contracts at or past their end date become
Expired.  Both are direct status writes that bypass
``ContractWorkflowService.transition``, so activation and cancellation side
effects never apply here.  Audit rows carry the system actor.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from estate_batch.tasks.base import SweepTaskResult
from estate_kernel.domain.clock import Clock
from estate_kernel.domain.events import ContractExpired, ContractExpiring, DomainEvent
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.domain.statuses import ContractStatus
from estate_kernel.logging_config import get_logger
from estate_kernel.models.audit_log import AuditAction
from estate_kernel.models.contract import Contract
from estate_kernel.selectors.lifecycle_selector import LifecycleSelector
from estate_kernel.services.auditor_service import AuditorService

logger = get_logger("batch.contract_expiry")


class ContractExpiryTask:
    """Move contracts to Expiring / Expired from their end date."""

    @property
    def task_type(self) -> str:
        return "contracts.expiry"

    @property
    def description(self) -> str:
        return "Mark contracts nearing or past their end date as Expiring / Expired"

    def run(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy,
    ) -> SweepTaskResult:
        selector = LifecycleSelector(session)
        auditor = AuditorService(session, clock)
        today = clock.today()
        now = clock.now()

        events: list[DomainEvent] = []
        sources: list[Contract] = []

        for contract in selector.expiring_contracts(today, policy.expiry_window_days):
            events.append(
                self._move(contract, ContractStatus.EXPIRING, ContractExpiring, now, auditor, policy)
            )
            sources.append(contract)

        for contract in selector.expired_contracts(today):
            events.append(
                self._move(contract, ContractStatus.EXPIRED, ContractExpired, now, auditor, policy)
            )
            sources.append(contract)

        if sources:
            session.flush()

        return SweepTaskResult(
            affected=len(sources),
            events=tuple(events),
            sources=tuple(sources),
        )

    def _move(self, contract, target, event_cls, now, auditor, policy) -> DomainEvent:
        previous = contract.status
        contract.status = target.value
        contract.updated_at = now
        contract.updated_by = policy.system_actor

        event = event_cls(
            occurred_at=now,
            contract_id=contract.id,
            contract_code=contract.contract_code,
            end_date=contract.end_date,
        )
        contract.record_event(event)

        auditor.record(
            entity_type="Contract",
            entity_id=contract.id,
            action=AuditAction.CONTRACT_EXPIRY_UPDATED,
            changes={
                "from_status": previous,
                "to_status": target.value,
                "end_date": contract.end_date,
            },
            actor=policy.system_actor,
        )

        logger.info(
            "contract_expiry_updated",
            extra={
                "contract_code": contract.contract_code,
                "from_status": previous,
                "to_status": target.value,
                "end_date": contract.end_date,
            },
        )
        return event
