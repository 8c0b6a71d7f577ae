"""
Sweep task: ISNAD SLA breach.

Forms past their SLA deadline, not yet flagged, and not in a terminal
status get ``sla_status = breached``.  Breach is detected, never prevented:
the form's status and stage are left alone.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from estate_batch.tasks.base import SweepTaskResult
from estate_kernel.domain.clock import Clock
from estate_kernel.domain.events import IsnadSlaBreached
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.domain.statuses import SlaStatus
from estate_kernel.logging_config import get_logger
from estate_kernel.models.audit_log import AuditAction
from estate_kernel.selectors.lifecycle_selector import LifecycleSelector
from estate_kernel.services.auditor_service import AuditorService

logger = get_logger("batch.isnad_sla_breach")


class IsnadSlaBreachTask:
    @property
    def task_type(self) -> str:
        return "isnad.sla_breach"

    @property
    def description(self) -> str:
        return "Flag ISNAD forms whose SLA deadline has passed"

    def run(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy,
    ) -> SweepTaskResult:
        now = clock.now()
        auditor = AuditorService(session, clock)
        forms = LifecycleSelector(session).breached_isnad_forms(now)

        events = []
        for form in forms:
            previous = form.sla_status
            form.sla_status = SlaStatus.BREACHED.value
            form.updated_at = now

            event = IsnadSlaBreached(
                occurred_at=now,
                form_id=form.id,
                reference_number=form.reference_number,
                status=form.status,
                current_stage=form.current_stage or "",
                sla_deadline=form.sla_deadline,
            )
            form.record_event(event)
            events.append(event)

            auditor.record(
                entity_type="IsnadForm",
                entity_id=form.id,
                action=AuditAction.ISNAD_SLA_BREACHED,
                changes={
                    "from_sla_status": previous,
                    "to_sla_status": SlaStatus.BREACHED.value,
                    "status": form.status,
                    "sla_deadline": form.sla_deadline,
                },
                actor=policy.system_actor,
            )

            logger.warning(
                "isnad_sla_breached",
                extra={
                    "form_id": str(form.id),
                    "reference_number": form.reference_number,
                    "status": form.status,
                    "sla_deadline": form.sla_deadline,
                },
            )

        if forms:
            session.flush()

        return SweepTaskResult(
            affected=len(forms),
            events=tuple(events),
            sources=tuple(forms),
        )
