"""
IsnadWorkflowService -- ISNAD governmental approval state machine.

Responsibility:
    Two distinct entry points over the same IsnadForm row:

    ``advance()``
        Status-keyed transition.  Derives ``current_stage`` and
        ``sla_deadline`` from the routing tables in ``LifecyclePolicy``,
        applies the changes-requested / approved / rejected / cancelled
        bookkeeping, and records ``IsnadStatusChanged``.

    ``advance_stage()``
        Generic manual path.  Sets a free-text stage label and assignee,
        increments the step counter, resets a fixed SLA deadline, and
        records ``IsnadStageAdvanced``.  Does not touch ``status``.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only.

Invariants enforced:
    - Terminal forms (approved/rejected/cancelled) are never advanced by
      either path; both raise InvalidTransitionError.
    - After ``advance()`` into a non-terminal status other than draft, the
      form carries a non-null ``sla_deadline``.  Statuses without an SLA
      entry keep the deadline they already had, or get the generic
      stage SLA if they had none.
"""

from datetime import timedelta
from uuid import UUID

from estate_kernel.domain.events import IsnadStageAdvanced, IsnadStatusChanged
from estate_kernel.domain.statuses import (
    TERMINAL_ISNAD_STATUSES,
    IsnadStatus,
    SlaStatus,
    parse_status,
)
from estate_kernel.exceptions import (
    InvalidStageError,
    InvalidStatusValueError,
    InvalidTransitionError,
    IsnadFormNotFoundError,
)
from estate_kernel.logging_config import get_logger
from estate_kernel.models.audit_log import AuditAction
from estate_kernel.models.isnad_form import IsnadForm
from estate_kernel.services.base import DEFAULT_ACTOR, BaseService, TransitionOutcome

logger = get_logger("services.isnad_workflow")


class IsnadWorkflowService(BaseService):
    """State machine for ``IsnadForm.status`` and its stage routing."""

    def _load(self, form_id: UUID) -> IsnadForm:
        form = self.session.get(IsnadForm, form_id)
        if form is None:
            raise IsnadFormNotFoundError(str(form_id))
        return form

    def _refuse_if_terminal(self, form: IsnadForm, requested: str) -> IsnadStatus:
        current = IsnadStatus(form.status)
        if current in TERMINAL_ISNAD_STATUSES:
            raise InvalidTransitionError(
                "IsnadForm",
                str(form.id),
                current.value,
                requested,
                reason="form is in a terminal status",
            )
        return current

    def advance(
        self,
        form_id: UUID,
        target_status: IsnadStatus | str,
        reason: str | None = None,
        performed_by: str | None = None,
    ) -> TransitionOutcome:
        """
        Move a form to ``target_status``.

        Raises:
            IsnadFormNotFoundError: No form with ``form_id``.
            InvalidStatusValueError: ``target_status`` is not an IsnadStatus.
            InvalidTransitionError: The form is already terminal.
        """
        form = self._load(form_id)
        target = parse_status(IsnadStatus, target_status)
        if target is None:
            raise InvalidStatusValueError("IsnadForm", str(form_id), target_status)
        previous = self._refuse_if_terminal(form, target.value)

        performer = performed_by or DEFAULT_ACTOR
        routing = self._policy.isnad
        now = self._clock.now()

        form.status = target.value
        form.updated_at = now
        form.updated_by = performer

        stage = routing.stage_for(target)
        if stage is not None:
            form.current_stage = stage

        sla_days = routing.sla_days_for(target)
        if sla_days is not None:
            form.sla_deadline = now + timedelta(days=sla_days)
            form.sla_status = SlaStatus.ON_TRACK.value
        elif (
            target not in TERMINAL_ISNAD_STATUSES
            and target is not IsnadStatus.DRAFT
            and form.sla_deadline is None
        ):
            form.sla_deadline = now + timedelta(days=routing.stage_advance_sla_days)
            form.sla_status = SlaStatus.ON_TRACK.value

        if previous is IsnadStatus.DRAFT and target is not IsnadStatus.DRAFT:
            if form.submitted_at is None:
                form.submitted_at = now

        if target is IsnadStatus.CHANGES_REQUESTED:
            form.return_count = (form.return_count or 0) + 1
            form.returned_by_stage = previous.value
            form.return_reason = reason
        elif target is IsnadStatus.APPROVED:
            form.completed_at = now
            form.sla_status = SlaStatus.COMPLETED.value
        elif target in (IsnadStatus.REJECTED, IsnadStatus.CANCELLED):
            form.cancellation_reason = reason
            form.cancelled_at = now
            form.cancelled_by = performer

        event = IsnadStatusChanged(
            occurred_at=now,
            form_id=form.id,
            reference_number=form.reference_number,
            previous_status=previous.value,
            new_status=target.value,
            current_stage=form.current_stage or "",
            performed_by=performer,
            submitted_by=form.created_by or "",
            reason=reason,
        )
        form.record_event(event)
        self.session.flush()

        self._auditor.record(
            entity_type="IsnadForm",
            entity_id=form.id,
            action=AuditAction.ISNAD_STATUS_CHANGED,
            changes={
                "from_status": previous.value,
                "to_status": target.value,
                "current_stage": form.current_stage,
                "sla_deadline": form.sla_deadline,
                "sla_status": form.sla_status,
                "reason": reason,
            },
            actor=performer,
        )

        logger.info(
            "isnad_transitioned",
            extra={
                "form_id": str(form.id),
                "reference_number": form.reference_number,
                "from_status": previous.value,
                "to_status": target.value,
                "current_stage": form.current_stage,
            },
        )

        return TransitionOutcome(
            entity_id=form.id,
            from_status=previous.value,
            to_status=target.value,
            events=(event,),
            sources=(form,),
        )

    def advance_stage(
        self,
        form_id: UUID,
        new_stage: str,
        assignee_id: str | None = None,
        performed_by: str | None = None,
    ) -> TransitionOutcome:
        """
        Move a form to a free-text stage label.

        The label is matched case-insensitively against the configured set
        and stored lower-cased.  ``sla_status`` is reset to on_track along
        with the new deadline.

        Raises:
            IsnadFormNotFoundError: No form with ``form_id``.
            InvalidStageError: ``new_stage`` is not a recognized stage label.
            InvalidTransitionError: The form is already terminal.
        """
        form = self._load(form_id)
        label = (new_stage or "").strip().lower()
        routing = self._policy.isnad
        if not routing.is_valid_stage_label(label):
            raise InvalidStageError(str(form_id), new_stage)
        self._refuse_if_terminal(form, form.status)

        performer = performed_by or DEFAULT_ACTOR
        now = self._clock.now()
        old_stage = form.current_stage or ""

        form.current_stage = label
        form.current_assignee_id = assignee_id
        form.current_step_index = (form.current_step_index or 0) + 1
        form.sla_deadline = now + timedelta(days=routing.stage_advance_sla_days)
        form.sla_status = SlaStatus.ON_TRACK.value
        form.updated_at = now
        form.updated_by = performer

        event = IsnadStageAdvanced(
            occurred_at=now,
            form_id=form.id,
            reference_number=form.reference_number,
            old_stage=old_stage,
            new_stage=label,
            assignee_id=assignee_id,
        )
        form.record_event(event)
        self.session.flush()

        self._auditor.record(
            entity_type="IsnadForm",
            entity_id=form.id,
            action=AuditAction.ISNAD_STAGE_ADVANCED,
            changes={
                "old_stage": old_stage,
                "new_stage": label,
                "assignee_id": assignee_id,
                "step_index": form.current_step_index,
                "sla_deadline": form.sla_deadline,
            },
            actor=performer,
        )

        logger.info(
            "isnad_stage_advanced",
            extra={
                "form_id": str(form.id),
                "old_stage": old_stage,
                "new_stage": label,
                "step_index": form.current_step_index,
            },
        )

        return TransitionOutcome(
            entity_id=form.id,
            from_status=form.status,
            to_status=form.status,
            events=(event,),
            sources=(form,),
            detail={"old_stage": old_stage, "new_stage": label},
        )
