"""
Module: estate_kernel.selectors.lifecycle_selector
Responsibility: Predicate queries behind the time-driven transitions of the
    reconciliation sweep.
Architecture position: Kernel > Selectors.

Every predicate re-checks the persisted status, not a delta since the last
run, so re-running a sweep pass never selects a row it already moved.

    expiring_contracts     status = active and today < end_date <= today + window
    expired_contracts      status in (active, expiring) and end_date <= today
    overdue_installments   status = pending and due_date < today
    breached_isnad_forms   sla_deadline < now, sla_status != breached,
                           status not terminal
"""

from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import select

from estate_kernel.domain.statuses import (
    TERMINAL_ISNAD_STATUSES,
    ContractStatus,
    InstallmentStatus,
    SlaStatus,
)
from estate_kernel.models.contract import Contract, Installment
from estate_kernel.models.isnad_form import IsnadForm
from estate_kernel.selectors.base import BaseSelector


class LifecycleSelector(BaseSelector):
    """Rows due for a time-driven transition."""

    def expiring_contracts(self, today: date, window_days: int = 30) -> list[Contract]:
        horizon = today + timedelta(days=window_days)
        stmt = (
            select(Contract)
            .where(
                Contract.status == ContractStatus.ACTIVE.value,
                Contract.end_date <= horizon,
                Contract.end_date > today,
            )
            .order_by(Contract.end_date, Contract.contract_code)
        )
        return list(self.session.scalars(stmt))

    def expired_contracts(self, today: date) -> list[Contract]:
        stmt = (
            select(Contract)
            .where(
                Contract.status.in_(
                    [ContractStatus.ACTIVE.value, ContractStatus.EXPIRING.value]
                ),
                Contract.end_date <= today,
            )
            .order_by(Contract.end_date, Contract.contract_code)
        )
        return list(self.session.scalars(stmt))

    def overdue_installments(
        self,
        today: date,
        contract_id: UUID | None = None,
    ) -> list[Installment]:
        stmt = select(Installment).where(
            Installment.status == InstallmentStatus.PENDING.value,
            Installment.due_date < today,
        )
        if contract_id is not None:
            stmt = stmt.where(Installment.contract_id == contract_id)
        stmt = stmt.order_by(
            Installment.contract_id,
            Installment.sequence_number,
        )
        return list(self.session.scalars(stmt))

    def breached_isnad_forms(self, now: datetime) -> list[IsnadForm]:
        stmt = (
            select(IsnadForm)
            .where(
                IsnadForm.sla_deadline.is_not(None),
                IsnadForm.sla_deadline < now,
                IsnadForm.sla_status != SlaStatus.BREACHED.value,
                IsnadForm.status.not_in([s.value for s in TERMINAL_ISNAD_STATUSES]),
            )
            .order_by(IsnadForm.sla_deadline, IsnadForm.reference_number)
        )
        return list(self.session.scalars(stmt))
