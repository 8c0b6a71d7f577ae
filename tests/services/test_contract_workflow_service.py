"""
Tests for ContractWorkflowService: creation, status changes, installment
plan generation and payment bookkeeping.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from estate_kernel.domain.events import (
    ContractActivated,
    ContractCancelled,
    ContractCreated,
    ContractStatusChanged,
    InstallmentOverdue,
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
from estate_kernel.models import Contract, Installment
from estate_kernel.selectors.audit_selector import AuditSelector
from estate_kernel.services.contract_workflow_service import ContractWorkflowService


@pytest.fixture
def service(session, clock, policy):
    return ContractWorkflowService(session, clock, policy)


@pytest.fixture
def contract_terms(make_asset, make_investor):
    asset = make_asset(status="completed")
    investor = make_investor()
    return dict(
        contract_code="CTR-2025-001",
        asset_id=asset.id,
        investor_id=investor.id,
        annual_rental_amount=Decimal("1250000"),
        vat_rate=Decimal("15"),
        contract_duration_years=1,
        start_date=date(2025, 1, 5),
        end_date=date(2026, 1, 4),
        installment_count=6,
        installment_frequency="Monthly",
    )


# =============================================================================
# Creation
# =============================================================================


class TestCreateContract:
    def test_totals_fixed_at_creation(self, service, contract_terms):
        outcome = service.create_contract(**contract_terms, created_by="mgr")

        contract = outcome.sources[0]
        assert contract.status == "draft"
        assert contract.total_annual_amount == Decimal("1437500")
        assert contract.total_contract_amount == Decimal("1437500")
        assert contract.installment_frequency == "monthly"
        assert contract.currency == "SAR"
        assert contract.installments == []
        assert isinstance(outcome.events[0], ContractCreated)

    def test_multi_year_total(self, service, contract_terms):
        contract_terms.update(contract_duration_years=3, end_date=date(2028, 1, 4))
        contract = service.create_contract(**contract_terms).sources[0]
        assert contract.total_contract_amount == Decimal("4312500")

    @pytest.mark.parametrize(
        "override, field",
        [
            ({"annual_rental_amount": Decimal("0")}, "annual_rental_amount"),
            ({"vat_rate": Decimal("-1")}, "vat_rate"),
            ({"vat_rate": Decimal("101")}, "vat_rate"),
            ({"contract_duration_years": 0}, "contract_duration_years"),
            ({"end_date": date(2025, 1, 5)}, "end_date"),
            ({"installment_frequency": "Weekly"}, "installment_frequency"),
        ],
    )
    def test_inconsistent_terms_rejected(self, service, contract_terms, override, field):
        contract_terms.update(override)
        with pytest.raises(ContractValidationError) as exc_info:
            service.create_contract(**contract_terms)
        assert exc_info.value.field == field

    def test_unknown_asset(self, service, contract_terms):
        contract_terms["asset_id"] = uuid4()
        with pytest.raises(AssetNotFoundError):
            service.create_contract(**contract_terms)

    def test_unknown_investor(self, service, contract_terms):
        contract_terms["investor_id"] = uuid4()
        with pytest.raises(InvestorNotFoundError):
            service.create_contract(**contract_terms)


# =============================================================================
# Status changes
# =============================================================================


class TestActivation:
    def test_generates_plan_once(self, service, make_contract):
        contract = make_contract(status="draft")

        outcome = service.transition(contract.id, "Active", None, True, "mgr")

        assert outcome.detail["installments_generated"] == 6
        assert [i.sequence_number for i in contract.installments] == [1, 2, 3, 4, 5, 6]
        assert {i.status for i in contract.installments} == {"pending"}
        assert contract.installments[0].due_date == date(2025, 2, 5)
        assert contract.installments[-1].due_date == date(2025, 7, 5)

        types = [type(e) for e in outcome.events]
        assert types == [ContractStatusChanged, ContractActivated]
        assert outcome.events[1].installment_count == 6
        assert outcome.events[1].investor_email == "investor@example.com"

    def test_existing_plan_never_regenerated(self, service, make_contract):
        contract = make_contract(status="draft")
        service.transition(contract.id, "active")
        first_ids = [i.id for i in contract.installments]

        service.transition(contract.id, "draft")
        outcome = service.transition(contract.id, "active")

        assert outcome.detail["installments_generated"] == 0
        assert [i.id for i in contract.installments] == first_ids

    def test_generation_can_be_skipped(self, service, make_contract):
        contract = make_contract(status="draft")
        outcome = service.transition(contract.id, "active", generate_installments=False)
        assert outcome.detail["installments_generated"] == 0
        assert contract.installments == []

    def test_no_count_means_no_plan(self, service, make_contract):
        contract = make_contract(status="draft", installment_count=None)
        outcome = service.transition(contract.id, "active")
        assert outcome.detail["installments_generated"] == 0

    def test_plan_generation_audited(self, service, make_contract, session):
        contract = make_contract(status="draft")
        service.transition(contract.id, "active", actor="mgr")

        trail = AuditSelector(session).trail("Contract", contract.id)
        assert [e.action_type for e in trail] == [
            "installment_plan_generated",
            "contract_status_changed",
        ]
        assert trail[0].changes["installment_count"] == 6


class TestCancellationAndArchival:
    def test_cancel_records_justification(self, service, make_contract, clock):
        contract = make_contract(status="active")

        outcome = service.transition(contract.id, "Cancelled", "Investor withdrew", actor="mgr")

        assert contract.cancellation_justification == "Investor withdrew"
        assert contract.cancelled_at == clock.now()
        assert contract.cancelled_by == "mgr"
        assert isinstance(outcome.events[-1], ContractCancelled)

    def test_archive_records_time_but_not_canceller(self, service, make_contract, clock):
        contract = make_contract(status="completed")

        outcome = service.transition(contract.id, "archived", "Retention", actor="mgr")

        assert contract.cancelled_at == clock.now()
        assert contract.cancellation_justification == "Retention"
        assert contract.cancelled_by is None
        assert [type(e) for e in outcome.events] == [ContractStatusChanged]

    def test_cancel_without_reason_clears_earlier_justification(self, service, make_contract):
        contract = make_contract(status="active")
        service.transition(contract.id, "archived", "Retention", actor="mgr")

        service.transition(contract.id, "cancelled", None, actor="mgr")

        assert contract.cancellation_justification is None
        assert contract.cancelled_by == "mgr"

    def test_any_status_reachable(self, service, make_contract):
        contract = make_contract(status="expired")
        service.transition(contract.id, "incomplete")
        assert contract.status == "incomplete"


class TestTransitionFailures:
    def test_unknown_contract(self, service):
        with pytest.raises(ContractNotFoundError):
            service.transition(uuid4(), "active")

    def test_unknown_status(self, service, make_contract):
        contract = make_contract(status="draft")
        with pytest.raises(InvalidStatusValueError):
            service.transition(contract.id, "Suspended")
        assert contract.status == "draft"


# =============================================================================
# Installments
# =============================================================================


@pytest.fixture
def active_contract(service, make_contract):
    contract = make_contract(status="draft")
    service.transition(contract.id, "active")
    return contract


class TestUpdateInstallmentStatus:
    def test_paid_requires_receipt(self, service, active_contract):
        installment = active_contract.installments[0]

        with pytest.raises(ReceiptRequiredError):
            service.update_installment_status(installment.id, "Paid")

        assert installment.status == "pending"

    def test_paid_with_receipt(self, service, active_contract):
        installment = active_contract.installments[0]

        service.update_installment_status(
            installment.id,
            "paid",
            payment_date=date(2025, 2, 4),
            receipt_file_url="https://files.example/receipt-1.pdf",
            updated_by="finance",
        )

        assert installment.status == "paid"
        assert installment.payment_date == date(2025, 2, 4)
        assert installment.updated_by == "finance"

    def test_stored_receipt_satisfies_requirement(self, service, active_contract):
        installment = active_contract.installments[0]
        service.update_installment_status(
            installment.id, "partial", receipt_file_url="https://files.example/r.pdf"
        )
        service.update_installment_status(installment.id, "paid")
        assert installment.status == "paid"

    def test_partial_payment_sets_remaining_balance(self, service, active_contract):
        installment = active_contract.installments[0]

        service.update_installment_status(
            installment.id, "partial", partial_amount_paid=Decimal("100000")
        )

        assert installment.partial_amount_paid == Decimal("100000")
        assert installment.remaining_balance == installment.amount_due - Decimal("100000")

    def test_unknown_installment(self, service):
        with pytest.raises(InstallmentNotFoundError):
            service.update_installment_status(uuid4(), "paid", receipt_file_url="x")

    def test_unknown_status(self, service, active_contract):
        with pytest.raises(InvalidStatusValueError):
            service.update_installment_status(active_contract.installments[0].id, "refunded")


class TestMarkInstallmentsOverdue:
    def test_only_pending_past_due(self, service, make_contract):
        # Due 2026-01-31, 2026-02-28, 2026-03-31; today is 2026-02-01
        contract = make_contract(
            status="draft",
            start=date(2025, 12, 31),
            end=date(2026, 12, 30),
            installment_count=3,
        )
        service.transition(contract.id, "active")

        outcome = service.mark_installments_overdue()

        assert outcome.detail["count"] == 1
        assert [i.status for i in contract.installments] == ["overdue", "pending", "pending"]
        (event,) = outcome.events
        assert isinstance(event, InstallmentOverdue)
        assert event.due_date == date(2026, 1, 31)
        assert event.investor_email == "investor@example.com"
        assert outcome.sources == (contract,)

    def test_repeat_is_noop(self, service, active_contract):
        first = service.mark_installments_overdue()
        second = service.mark_installments_overdue()
        assert first.detail["count"] == 6
        assert second.detail["count"] == 0
        assert second.events == ()

    def test_paid_installment_not_marked(self, service, active_contract):
        paid = active_contract.installments[0]
        service.update_installment_status(paid.id, "paid", receipt_file_url="r.pdf")

        outcome = service.mark_installments_overdue(active_contract.id)

        assert outcome.detail["count"] == 5
        assert paid.status == "paid"

    def test_scoped_to_contract(self, service, active_contract, make_contract):
        other = make_contract(status="draft")
        service.transition(other.id, "active")

        service.mark_installments_overdue(contract_id=other.id)

        assert {i.status for i in other.installments} == {"overdue"}
        assert {i.status for i in active_contract.installments} == {"pending"}

    def test_unknown_contract_scope(self, service):
        with pytest.raises(ContractNotFoundError):
            service.mark_installments_overdue(contract_id=uuid4())


# =============================================================================
# Command level
# =============================================================================


class TestContractCommands:
    def test_activation_scenario(
        self, commands, make_contract, make_staff, load, notifications, email_sender
    ):
        admin = make_staff("Admin")
        contract = make_contract(status="draft")

        commands.transition_contract(contract.id, "Active", actor="mgr")

        stored = load(Contract, contract.id)
        assert stored.status == "active"
        assert len(stored.installments) == 6
        for installment in stored.installments:
            assert installment.amount_due.quantize(Decimal("0.01")) == Decimal("239583.33")

        (email,) = email_sender.for_template("ContractActivated")
        assert email.to == "investor@example.com"
        assert email.subject == f"Contract Activated - {contract.contract_code}"
        assert "6 scheduled" in email.body

        (row,) = notifications()
        assert row.user_id == admin.id
        assert row.title == "Contract Activated"

    def test_create_contract_command(self, commands, contract_terms, load):
        outcome = commands.create_contract(created_by="mgr", **contract_terms)

        stored = load(Contract, outcome.entity_id)
        assert stored.total_contract_amount == Decimal("1437500")
        assert stored.created_by == "mgr"

    def test_overdue_command_emails_investor_and_notifies_roles(
        self, commands, make_contract, make_staff, load, notifications, email_sender
    ):
        admin = make_staff("Admin")
        manager = make_staff("ContractManager")
        contract = make_contract(
            status="draft",
            start=date(2025, 12, 31),
            end=date(2026, 12, 30),
            installment_count=3,
        )
        commands.transition_contract(contract.id, "active", actor="mgr")
        email_sender.sent.clear()

        outcome = commands.mark_installments_overdue()

        assert outcome.detail["count"] == 1
        first = load(Contract, contract.id).installments[0]
        assert load(Installment, first.id).status == "overdue"

        (email,) = email_sender.sent
        assert email.template_key == "InstallmentOverdue"
        assert "Due Date: 2026-01-31" in email.body

        overdue_rows = [n for n in notifications() if n.title == "Installment Overdue"]
        assert {n.user_id for n in overdue_rows} == {admin.id, manager.id}

    def test_receipt_failure_rolls_back(self, commands, make_contract, load, audit_trail):
        contract = make_contract(status="draft")
        commands.transition_contract(contract.id, "active")
        installment = load(Contract, contract.id).installments[0]

        with pytest.raises(ReceiptRequiredError):
            commands.update_installment_status(installment.id, "paid", updated_by="finance")

        assert load(Installment, installment.id).status == "pending"
        assert audit_trail("Installment", installment.id) == ()
