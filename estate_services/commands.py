"""
estate_services.commands -- the command surface of the lifecycle core.

Responsibility:
    One method per exposed command.  Each call opens a unit of work from
    the session factory, runs exactly one kernel state-machine operation,
    commits, and only then hands the emitted domain events to the
    NotificationDispatcher.

Architecture position:
    Services -- owns the transaction boundary.  The kernel services below
    it only flush.

Invariants enforced:
    - A command either commits the entity mutation together with its audit
      row, or commits nothing.
    - Events are published after commit, in emission order, and the
      aggregates' pending-event buffers are cleared once published.
    - A lost optimistic-lock race (``StaleDataError``) surfaces as
      ``OptimisticLockError``.

Failure modes:
    - NotFoundError / TransitionError subclasses propagate unchanged.
    - OptimisticLockError on a concurrent write to the same aggregate.
    - Notification failures never propagate (dispatcher boundary).

Usage:
    commands = LifecycleCommands(get_session_factory(), dispatcher, policy)
    outcome = commands.transition_asset(asset_id, "in_review", None, "userA")
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from estate_kernel.db.engine import session_scope
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.exceptions import OptimisticLockError
from estate_kernel.logging_config import LogContext, get_logger
from estate_kernel.services.asset_workflow_service import AssetWorkflowService
from estate_kernel.services.base import DEFAULT_ACTOR, TransitionOutcome
from estate_kernel.services.contract_workflow_service import ContractWorkflowService
from estate_kernel.services.isnad_workflow_service import IsnadWorkflowService
from estate_services.notification_dispatcher import NotificationDispatcher

logger = get_logger("services.commands")


class LifecycleCommands:
    """
    Transactional entry points for the asset, ISNAD and contract machines.

    Thread-safe: every call builds its own session and services.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: NotificationDispatcher,
        policy: LifecyclePolicy,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._policy = policy
        self._clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Asset
    # -------------------------------------------------------------------------

    def transition_asset(
        self,
        asset_id: UUID,
        target_status: str,
        reason: str | None = None,
        actor: str | None = None,
    ) -> TransitionOutcome:
        return self._run(
            "transition_asset",
            "Asset",
            asset_id,
            actor,
            lambda session: AssetWorkflowService(
                session, self._clock, self._policy
            ).transition(asset_id, target_status, reason, actor or DEFAULT_ACTOR),
        )

    # -------------------------------------------------------------------------
    # ISNAD
    # -------------------------------------------------------------------------

    def advance_isnad(
        self,
        form_id: UUID,
        target_status: str,
        reason: str | None = None,
        performed_by: str | None = None,
    ) -> TransitionOutcome:
        return self._run(
            "advance_isnad",
            "IsnadForm",
            form_id,
            performed_by,
            lambda session: IsnadWorkflowService(
                session, self._clock, self._policy
            ).advance(form_id, target_status, reason, performed_by),
        )

    def advance_isnad_stage(
        self,
        form_id: UUID,
        new_stage: str,
        assignee_id: str | None = None,
        performed_by: str | None = None,
    ) -> TransitionOutcome:
        return self._run(
            "advance_isnad_stage",
            "IsnadForm",
            form_id,
            performed_by,
            lambda session: IsnadWorkflowService(
                session, self._clock, self._policy
            ).advance_stage(form_id, new_stage, assignee_id, performed_by),
        )

    # -------------------------------------------------------------------------
    # Contract / Installment
    # -------------------------------------------------------------------------

    def create_contract(
        self,
        contract_code: str,
        asset_id: UUID,
        investor_id: UUID,
        annual_rental_amount: Decimal,
        vat_rate: Decimal,
        contract_duration_years: int,
        start_date: date,
        end_date: date,
        created_by: str | None = None,
        **terms: Any,
    ) -> TransitionOutcome:
        """Create a Draft contract.  ``terms`` are the optional contract fields."""
        return self._run(
            "create_contract",
            "Contract",
            None,
            created_by,
            lambda session: ContractWorkflowService(
                session, self._clock, self._policy
            ).create_contract(
                contract_code=contract_code,
                asset_id=asset_id,
                investor_id=investor_id,
                annual_rental_amount=annual_rental_amount,
                vat_rate=vat_rate,
                contract_duration_years=contract_duration_years,
                start_date=start_date,
                end_date=end_date,
                created_by=created_by,
                **terms,
            ),
        )

    def transition_contract(
        self,
        contract_id: UUID,
        target_status: str,
        reason: str | None = None,
        generate_installments: bool = True,
        actor: str | None = None,
    ) -> TransitionOutcome:
        return self._run(
            "transition_contract",
            "Contract",
            contract_id,
            actor,
            lambda session: ContractWorkflowService(
                session, self._clock, self._policy
            ).transition(contract_id, target_status, reason, generate_installments, actor),
        )

    def update_installment_status(
        self,
        installment_id: UUID,
        target_status: str,
        updated_by: str | None = None,
        **payment: Any,
    ) -> TransitionOutcome:
        """``payment``: payment_date, partial_amount_paid, receipt_file_url, notes."""
        return self._run(
            "update_installment_status",
            "Installment",
            installment_id,
            updated_by,
            lambda session: ContractWorkflowService(
                session, self._clock, self._policy
            ).update_installment_status(
                installment_id, target_status, updated_by=updated_by, **payment
            ),
        )

    def mark_installments_overdue(
        self,
        contract_id: UUID | None = None,
        actor: str | None = None,
    ) -> TransitionOutcome:
        return self._run(
            "mark_installments_overdue",
            "Contract",
            contract_id,
            actor,
            lambda session: ContractWorkflowService(
                session, self._clock, self._policy
            ).mark_installments_overdue(contract_id, actor),
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run(
        self,
        command: str,
        entity_type: str,
        entity_id: UUID | None,
        actor: str | None,
        operation: Callable[[Session], TransitionOutcome],
    ) -> TransitionOutcome:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            command=command,
            actor_id=actor,
            entity_id=str(entity_id) if entity_id is not None else None,
        ):
            t0 = time.monotonic()
            try:
                with session_scope(self._session_factory) as session:
                    outcome = operation(session)
            except StaleDataError as exc:
                logger.warning(
                    "command_lock_conflict",
                    extra={"entity_type": entity_type},
                )
                raise OptimisticLockError(entity_type, str(entity_id)) from exc

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "command_committed",
                extra={
                    "from_status": outcome.from_status,
                    "to_status": outcome.to_status,
                    "event_count": len(outcome.events),
                    "duration_ms": duration_ms,
                },
            )

            self._dispatcher.publish(outcome.events)
            for source in outcome.sources:
                source.clear_events()
            return outcome
