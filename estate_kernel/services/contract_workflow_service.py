"""
ContractWorkflowService -- contract and installment state machine.

Responsibility:
    - ``create_contract()``: entry point into Draft.  Validates the terms and
      fixes ``total_annual_amount`` and ``total_contract_amount``.
    - ``transition()``: moves a contract to any ContractStatus.  On
      activation with ``generate_installments`` and no existing plan, builds
      the installment plan.  Cancellation/archival records the
      justification and timestamp.
    - ``update_installment_status()``: payment bookkeeping on one
      installment.  Marking paid requires a receipt.
    - ``mark_installments_overdue()``: Pending installments past their due
      date become Overdue, one ``InstallmentOverdue`` event each.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only.

Invariants enforced:
    - total_contract_amount = annual * (1 + vat/100) * duration, computed
      once here and never rewritten (ORM listener).
    - The installment plan is created in bulk exactly once: activation with
      existing installments leaves them untouched.
    - amount_due / due_date / sequence_number never change after insert.
    - Overdue marking re-checks ``status == pending`` on the persisted row,
      so repeating it is a no-op.

Failure modes:
    - ContractNotFoundError / InstallmentNotFoundError /
      AssetNotFoundError / InvestorNotFoundError.
    - InvalidStatusValueError for an unrecognized target status.
    - ContractValidationError for inconsistent terms at creation.
    - ReceiptRequiredError when marking paid without a receipt.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from estate_kernel.domain.events import (
    ContractActivated,
    ContractCancelled,
    ContractCreated,
    ContractStatusChanged,
    DomainEvent,
    InstallmentOverdue,
)
from estate_kernel.domain.installment_plan import (
    compute_contract_totals,
    generate_installment_plan,
)
from estate_kernel.domain.statuses import (
    ContractStatus,
    InstallmentFrequency,
    InstallmentStatus,
    parse_status,
)
from estate_kernel.exceptions import (
    AssetNotFoundError,
    ContractNotFoundError,
    ContractValidationError,
    InstallmentNotFoundError,
    InvalidStatusValueError,
    InvestorNotFoundError,
    ReceiptRequiredError,
)
from estate_kernel.logging_config import get_logger
from estate_kernel.models.asset import Asset
from estate_kernel.models.audit_log import AuditAction
from estate_kernel.models.contract import Contract, Installment
from estate_kernel.models.investor import Investor
from estate_kernel.selectors.lifecycle_selector import LifecycleSelector
from estate_kernel.services.base import DEFAULT_ACTOR, BaseService, TransitionOutcome

logger = get_logger("services.contract_workflow")


class ContractWorkflowService(BaseService):
    """State machine for ``Contract.status`` and ``Installment.status``."""

    # =========================================================================
    # Creation
    # =========================================================================

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
        installment_count: int | None = None,
        installment_frequency: InstallmentFrequency | str | None = None,
        land_code: str | None = None,
        currency: str = "SAR",
        signing_date: date | None = None,
        created_by: str | None = None,
    ) -> TransitionOutcome:
        """
        Create a Draft contract with its totals fixed.

        Raises:
            ContractValidationError: Non-positive amount or duration, VAT
                outside 0..100, start_date not before end_date, or an
                unrecognized installment frequency.
            AssetNotFoundError / InvestorNotFoundError.
        """
        annual = Decimal(annual_rental_amount)
        vat = Decimal(vat_rate)

        if annual <= 0:
            raise ContractValidationError(contract_code, "annual_rental_amount", "must be positive")
        if vat < 0 or vat > 100:
            raise ContractValidationError(contract_code, "vat_rate", "must be between 0 and 100")
        if contract_duration_years is None or contract_duration_years <= 0:
            raise ContractValidationError(
                contract_code, "contract_duration_years", "must be positive"
            )
        if start_date >= end_date:
            raise ContractValidationError(contract_code, "end_date", "must be after start_date")

        frequency = None
        if installment_frequency is not None:
            frequency = parse_status(InstallmentFrequency, installment_frequency)
            if frequency is None:
                raise ContractValidationError(
                    contract_code,
                    "installment_frequency",
                    f"unrecognized frequency {installment_frequency!r}",
                )

        if self.session.get(Asset, asset_id) is None:
            raise AssetNotFoundError(str(asset_id))
        if self.session.get(Investor, investor_id) is None:
            raise InvestorNotFoundError(str(investor_id))

        total_annual, total = compute_contract_totals(annual, vat, contract_duration_years)
        now = self._clock.now()
        actor = created_by or DEFAULT_ACTOR

        contract = Contract(
            contract_code=contract_code,
            land_code=land_code,
            asset_id=asset_id,
            investor_id=investor_id,
            status=ContractStatus.DRAFT.value,
            annual_rental_amount=annual,
            vat_rate=vat,
            total_annual_amount=total_annual,
            total_contract_amount=total,
            contract_duration_years=contract_duration_years,
            currency=currency,
            signing_date=signing_date,
            start_date=start_date,
            end_date=end_date,
            installment_count=installment_count,
            installment_frequency=frequency.value if frequency else None,
            created_by=actor,
            updated_by=actor,
        )
        self.session.add(contract)
        self.session.flush()

        event = ContractCreated(
            occurred_at=now,
            contract_id=contract.id,
            contract_code=contract.contract_code,
            asset_id=asset_id,
            investor_id=investor_id,
        )
        contract.record_event(event)

        self._auditor.record(
            entity_type="Contract",
            entity_id=contract.id,
            action=AuditAction.CONTRACT_CREATED,
            changes={
                "status": ContractStatus.DRAFT.value,
                "total_annual_amount": total_annual,
                "total_contract_amount": total,
                "installment_count": installment_count,
                "installment_frequency": contract.installment_frequency,
            },
            actor=actor,
        )

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract.id),
                "contract_code": contract_code,
                "total_contract_amount": str(total),
            },
        )

        return TransitionOutcome(
            entity_id=contract.id,
            from_status=None,
            to_status=ContractStatus.DRAFT.value,
            events=(event,),
            sources=(contract,),
        )

    # =========================================================================
    # Contract status
    # =========================================================================

    def _load_contract(self, contract_id: UUID) -> Contract:
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract

    def _generate_plan(self, contract: Contract, actor: str) -> int:
        frequency = (
            InstallmentFrequency(contract.installment_frequency)
            if contract.installment_frequency
            else None
        )
        planned = generate_installment_plan(
            contract.total_contract_amount,
            contract.installment_count,
            frequency,
            contract.start_date,
        )
        for item in planned:
            contract.installments.append(
                Installment(
                    sequence_number=item.sequence_number,
                    amount_due=item.amount_due,
                    due_date=item.due_date,
                    status=InstallmentStatus.PENDING.value,
                    updated_by=actor,
                )
            )
        if planned:
            self.session.flush()
            self._auditor.record(
                entity_type="Contract",
                entity_id=contract.id,
                action=AuditAction.INSTALLMENT_PLAN_GENERATED,
                changes={
                    "installment_count": len(planned),
                    "amount_due": planned[0].amount_due,
                    "first_due_date": planned[0].due_date,
                    "last_due_date": planned[-1].due_date,
                },
                actor=actor,
            )
        return len(planned)

    def transition(
        self,
        contract_id: UUID,
        target_status: ContractStatus | str,
        reason: str | None = None,
        generate_installments: bool = True,
        actor: str | None = None,
    ) -> TransitionOutcome:
        """
        Move a contract to ``target_status``.

        Raises:
            ContractNotFoundError: No contract with ``contract_id``.
            InvalidStatusValueError: ``target_status`` is not a ContractStatus.
        """
        contract = self._load_contract(contract_id)
        target = parse_status(ContractStatus, target_status)
        if target is None:
            raise InvalidStatusValueError("Contract", str(contract_id), target_status)

        performer = actor or DEFAULT_ACTOR
        now = self._clock.now()
        previous = contract.status
        generated = 0

        contract.status = target.value

        if (
            target is ContractStatus.ACTIVE
            and generate_installments
            and not contract.installments
        ):
            generated = self._generate_plan(contract, performer)

        if target in (ContractStatus.CANCELLED, ContractStatus.ARCHIVED):
            contract.cancellation_justification = reason
            contract.cancelled_at = now
            if target is ContractStatus.CANCELLED:
                contract.cancelled_by = performer

        contract.updated_at = now
        contract.updated_by = performer

        events: list[DomainEvent] = [
            ContractStatusChanged(
                occurred_at=now,
                contract_id=contract.id,
                contract_code=contract.contract_code,
                previous_status=previous,
                new_status=target.value,
                reason=reason,
            )
        ]
        if target is ContractStatus.ACTIVE:
            events.append(
                ContractActivated(
                    occurred_at=now,
                    contract_id=contract.id,
                    contract_code=contract.contract_code,
                    installment_count=len(contract.installments),
                    investor_email=contract.investor.email if contract.investor else None,
                )
            )
        elif target is ContractStatus.CANCELLED:
            events.append(
                ContractCancelled(
                    occurred_at=now,
                    contract_id=contract.id,
                    contract_code=contract.contract_code,
                    cancelled_by=performer,
                    reason=reason,
                )
            )
        for event in events:
            contract.record_event(event)

        self.session.flush()

        self._auditor.record(
            entity_type="Contract",
            entity_id=contract.id,
            action=AuditAction.CONTRACT_STATUS_CHANGED,
            changes={
                "from_status": previous,
                "to_status": target.value,
                "reason": reason,
                "installments_generated": generated,
            },
            actor=performer,
        )

        logger.info(
            "contract_transitioned",
            extra={
                "contract_id": str(contract.id),
                "contract_code": contract.contract_code,
                "from_status": previous,
                "to_status": target.value,
                "installments_generated": generated,
            },
        )

        return TransitionOutcome(
            entity_id=contract.id,
            from_status=previous,
            to_status=target.value,
            events=tuple(events),
            sources=(contract,),
            detail={"installments_generated": generated},
        )

    # =========================================================================
    # Installments
    # =========================================================================

    def update_installment_status(
        self,
        installment_id: UUID,
        target_status: InstallmentStatus | str,
        payment_date: date | None = None,
        partial_amount_paid: Decimal | None = None,
        receipt_file_url: str | None = None,
        notes: str | None = None,
        updated_by: str | None = None,
    ) -> TransitionOutcome:
        """
        Record a payment-status change on one installment.

        Raises:
            InstallmentNotFoundError: No installment with ``installment_id``.
            InvalidStatusValueError: Not an InstallmentStatus.
            ReceiptRequiredError: Paid without a receipt, given or stored.
        """
        installment = self.session.get(Installment, installment_id)
        if installment is None:
            raise InstallmentNotFoundError(str(installment_id))
        target = parse_status(InstallmentStatus, target_status)
        if target is None:
            raise InvalidStatusValueError("Installment", str(installment_id), target_status)
        if (
            target is InstallmentStatus.PAID
            and not receipt_file_url
            and not installment.receipt_file_url
        ):
            raise ReceiptRequiredError(str(installment_id))

        performer = updated_by or DEFAULT_ACTOR
        now = self._clock.now()
        previous = installment.status

        installment.status = target.value
        if payment_date is not None:
            installment.payment_date = payment_date
        if partial_amount_paid is not None:
            partial = Decimal(partial_amount_paid)
            installment.partial_amount_paid = partial
            installment.remaining_balance = installment.amount_due - partial
        if receipt_file_url:
            installment.receipt_file_url = receipt_file_url
        if notes is not None:
            installment.notes = notes
        installment.updated_by = performer
        installment.updated_at = now
        self.session.flush()

        self._auditor.record(
            entity_type="Installment",
            entity_id=installment.id,
            action=AuditAction.INSTALLMENT_STATUS_CHANGED,
            changes={
                "from_status": previous,
                "to_status": target.value,
                "payment_date": installment.payment_date,
                "partial_amount_paid": installment.partial_amount_paid,
                "remaining_balance": installment.remaining_balance,
            },
            actor=performer,
        )

        logger.info(
            "installment_status_updated",
            extra={
                "installment_id": str(installment.id),
                "from_status": previous,
                "to_status": target.value,
            },
        )

        return TransitionOutcome(
            entity_id=installment.id,
            from_status=previous,
            to_status=target.value,
        )

    def mark_installments_overdue(
        self,
        contract_id: UUID | None = None,
        actor: str | None = None,
    ) -> TransitionOutcome:
        """
        Mark Pending installments with ``due_date < today`` as Overdue.

        Scoped to one contract when ``contract_id`` is given.  Each
        installment emits one ``InstallmentOverdue``, recorded on its parent
        contract.  ``detail["count"]`` is the number of rows moved.

        Raises:
            ContractNotFoundError: ``contract_id`` given but absent.
        """
        if contract_id is not None:
            self._load_contract(contract_id)

        performer = actor or self._policy.system_actor
        now = self._clock.now()
        today = self._clock.today()

        installments = LifecycleSelector(self.session).overdue_installments(
            today, contract_id=contract_id
        )

        events: list[DomainEvent] = []
        sources: dict[UUID, Contract] = {}
        for installment in installments:
            contract = installment.contract
            installment.status = InstallmentStatus.OVERDUE.value
            installment.updated_at = now
            installment.updated_by = performer

            event = InstallmentOverdue(
                occurred_at=now,
                installment_id=installment.id,
                contract_id=contract.id,
                contract_code=contract.contract_code,
                sequence_number=installment.sequence_number,
                amount_due=installment.amount_due,
                due_date=installment.due_date,
                investor_email=contract.investor.email if contract.investor else None,
            )
            contract.record_event(event)
            events.append(event)
            sources[contract.id] = contract

            self._auditor.record(
                entity_type="Installment",
                entity_id=installment.id,
                action=AuditAction.INSTALLMENT_OVERDUE,
                changes={
                    "from_status": InstallmentStatus.PENDING.value,
                    "to_status": InstallmentStatus.OVERDUE.value,
                    "due_date": installment.due_date,
                    "as_of": today,
                },
                actor=performer,
            )

            logger.warning(
                "installment_overdue",
                extra={
                    "installment_id": str(installment.id),
                    "contract_code": contract.contract_code,
                    "sequence_number": installment.sequence_number,
                },
            )

        if installments:
            self.session.flush()

        return TransitionOutcome(
            entity_id=contract_id,
            from_status=InstallmentStatus.PENDING.value,
            to_status=InstallmentStatus.OVERDUE.value,
            events=tuple(events),
            sources=tuple(sources.values()),
            detail={"count": len(installments)},
        )
