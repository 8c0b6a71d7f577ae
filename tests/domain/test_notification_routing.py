"""
Tests for estate_kernel.domain.notification_routing.

route_event() is pure: each test builds an event and inspects the intents.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from estate_kernel.domain.events import (
    AssetApproved,
    AssetRejected,
    AssetSubmitted,
    ContractActivated,
    ContractCreated,
    ContractExpired,
    ContractExpiring,
    ContractStatusChanged,
    InstallmentOverdue,
    IsnadSlaBreached,
    IsnadStageAdvanced,
    IsnadStatusChanged,
)
from estate_kernel.domain.notification_routing import (
    InvestorEmail,
    NotificationKind,
    RoleNotice,
    UserNotice,
    parse_user_id,
    route_event,
)

NOW = datetime(2026, 2, 1, 12, 0, 0)


def _isnad_changed(new_status, submitted_by="", reason=None):
    return IsnadStatusChanged(
        occurred_at=NOW,
        form_id=uuid4(),
        reference_number="ISN-001",
        previous_status="pending_ceo",
        new_status=new_status,
        current_stage="minister",
        performed_by="ceoUser",
        submitted_by=submitted_by,
        reason=reason,
    )


class TestParseUserId:
    def test_uuid_string(self):
        uid = uuid4()
        assert parse_user_id(str(uid)) == uid

    @pytest.mark.parametrize("raw", [None, "", "userA", "system"])
    def test_non_uuid_is_none(self, raw):
        assert parse_user_id(raw) is None


# =============================================================================
# Asset
# =============================================================================


class TestAssetRoutes:
    def test_submitted_notifies_creator_and_reviewers(self, policy):
        creator = uuid4()
        event = AssetSubmitted(
            occurred_at=NOW,
            asset_id=uuid4(),
            asset_code="AST-1",
            asset_name="Plot 7",
            submitted_by="userA",
            created_by=str(creator),
        )
        intents = route_event(event, policy)

        assert isinstance(intents[0], UserNotice)
        assert intents[0].user_id == creator
        assert intents[0].title == "Asset Submitted for Review"
        assert intents[1] == RoleNotice(
            role="Reviewer",
            kind=NotificationKind.INFO,
            title="Asset Awaiting Review",
            message="Asset AST-1 has been submitted for review.",
            related_entity_type="Asset",
            related_entity_id=event.asset_id,
        )

    def test_creator_without_user_id_is_skipped(self, policy):
        event = AssetSubmitted(
            occurred_at=NOW,
            asset_id=uuid4(),
            asset_code="AST-1",
            asset_name="Plot 7",
            submitted_by="userA",
            created_by="bulk-import",
        )
        intents = route_event(event, policy)
        assert [type(i) for i in intents] == [RoleNotice]

    def test_approved_notifies_creator_and_admin(self, policy):
        creator = uuid4()
        event = AssetApproved(
            occurred_at=NOW,
            asset_id=uuid4(),
            asset_code="AST-1",
            asset_name="Plot 7",
            approved_by="reviewerB",
            created_by=str(creator),
        )
        intents = route_event(event, policy)
        assert intents[0].kind is NotificationKind.SUCCESS
        assert intents[1].role == "Admin"

    def test_rejected_carries_reason(self, policy):
        creator = uuid4()
        event = AssetRejected(
            occurred_at=NOW,
            asset_id=uuid4(),
            asset_code="AST-1",
            asset_name="Plot 7",
            rejected_by="reviewerB",
            created_by=str(creator),
            reason="Missing deed",
        )
        (notice,) = route_event(event, policy)
        assert notice.kind is NotificationKind.WARNING
        assert notice.message.endswith("Reason: Missing deed")


# =============================================================================
# ISNAD
# =============================================================================


class TestIsnadRoutes:
    @pytest.mark.parametrize(
        "status, role",
        [
            ("pending_verification", "Reviewer"),
            ("investment_agency_review", "AssetManager"),
            ("pending_ceo", "Admin"),
            ("pending_minister", "Admin"),
            ("verified_filled", "Reviewer"),
            ("in_package", "Reviewer"),
        ],
    )
    def test_role_by_new_status(self, policy, status, role):
        intents = route_event(_isnad_changed(status), policy)
        assert intents[0].role == role

    def test_pending_minister_title(self, policy):
        (notice,) = route_event(_isnad_changed("pending_minister"), policy)
        assert notice.title == "ISNAD Package Awaiting Minister Approval"
        assert "ISN-001" in notice.message

    @pytest.mark.parametrize(
        "status, kind",
        [
            ("changes_requested", NotificationKind.WARNING),
            ("rejected", NotificationKind.WARNING),
            ("approved", NotificationKind.SUCCESS),
        ],
    )
    def test_submitter_notified_on_return_reject_approve(self, policy, status, kind):
        submitter = uuid4()
        intents = route_event(_isnad_changed(status, submitted_by=str(submitter)), policy)

        user_notices = [i for i in intents if isinstance(i, UserNotice)]
        assert len(user_notices) == 1
        assert user_notices[0].user_id == submitter
        assert user_notices[0].kind is kind

    def test_submitter_not_notified_mid_pipeline(self, policy):
        intents = route_event(_isnad_changed("pending_ceo", submitted_by=str(uuid4())), policy)
        assert not any(isinstance(i, UserNotice) for i in intents)

    def test_reason_appended(self, policy):
        (notice, *_) = route_event(_isnad_changed("rejected", reason="Zoning conflict"), policy)
        assert notice.message.endswith("Reason: Zoning conflict")

    @pytest.mark.parametrize(
        "stage, role",
        [
            ("pending_verification", "Reviewer"),
            ("investment_agency", "AssetManager"),
            ("pending_ceo", "Admin"),
            ("in_package", "Reviewer"),
        ],
    )
    def test_stage_advanced_role(self, policy, stage, role):
        event = IsnadStageAdvanced(
            occurred_at=NOW,
            form_id=uuid4(),
            reference_number="ISN-001",
            old_stage="school_planning",
            new_stage=stage,
        )
        (notice,) = route_event(event, policy)
        assert notice.role == role
        assert notice.title == "ISNAD Stage Advanced"

    def test_sla_breach_notifies_admin_and_stage_owner(self, policy):
        event = IsnadSlaBreached(
            occurred_at=NOW,
            form_id=uuid4(),
            reference_number="ISN-001",
            status="investment_agency_review",
            current_stage="asset_manager",
            sla_deadline=datetime(2026, 1, 30, 9, 0, 0),
        )
        intents = route_event(event, policy)
        assert [i.role for i in intents] == ["Admin", "AssetManager"]
        assert all(i.kind is NotificationKind.ERROR for i in intents)

    def test_sla_breach_owned_by_admin_notifies_once(self, policy):
        event = IsnadSlaBreached(
            occurred_at=NOW,
            form_id=uuid4(),
            reference_number="ISN-001",
            status="pending_ceo",
            current_stage="ceo",
            sla_deadline=datetime(2026, 1, 30, 9, 0, 0),
        )
        assert [i.role for i in route_event(event, policy)] == ["Admin"]


# =============================================================================
# Contract / Installment
# =============================================================================


class TestContractRoutes:
    def test_status_change_goes_to_admin(self, policy):
        event = ContractStatusChanged(
            occurred_at=NOW,
            contract_id=uuid4(),
            contract_code="CTR-1",
            previous_status="active",
            new_status="cancelled",
            reason="Investor withdrew",
        )
        (notice,) = route_event(event, policy)
        assert notice.role == "Admin"
        assert notice.title == "Contract Cancelled"
        assert notice.message == "Contract 'CTR-1' has been cancelled. Reason: Investor withdrew"

    def test_activation_emails_investor(self, policy):
        event = ContractActivated(
            occurred_at=NOW,
            contract_id=uuid4(),
            contract_code="CTR-1",
            installment_count=6,
            investor_email="investor@example.com",
        )
        (email,) = route_event(event, policy)
        assert email == InvestorEmail(
            to="investor@example.com",
            template_key="ContractActivated",
            model={"contract_code": "CTR-1", "installment_count": 6},
        )

    def test_activation_without_email_is_silent(self, policy):
        event = ContractActivated(
            occurred_at=NOW,
            contract_id=uuid4(),
            contract_code="CTR-1",
            installment_count=6,
        )
        assert route_event(event, policy) == []

    def test_expiring_and_expired_notify_admin(self, policy):
        kwargs = dict(
            occurred_at=NOW,
            contract_id=uuid4(),
            contract_code="CTR-1",
            end_date=date(2026, 2, 20),
        )
        (expiring,) = route_event(ContractExpiring(**kwargs), policy)
        (expired,) = route_event(ContractExpired(**kwargs), policy)
        assert expiring.role == expired.role == "Admin"
        assert expiring.kind is NotificationKind.WARNING
        assert "2026-02-20" in expiring.message

    def test_overdue_emails_investor_and_notifies_two_roles(self, policy):
        event = InstallmentOverdue(
            occurred_at=NOW,
            installment_id=uuid4(),
            contract_id=uuid4(),
            contract_code="CTR-1",
            sequence_number=2,
            amount_due=Decimal("239583.333333333"),
            due_date=date(2026, 1, 31),
            investor_email="investor@example.com",
        )
        email, *notices = route_event(event, policy)

        assert email.template_key == "InstallmentOverdue"
        assert email.model["amount"] == "239,583.33"
        assert email.model["installment_number"] == 2
        assert [n.role for n in notices] == ["Admin", "ContractManager"]

    def test_unrouted_event_yields_nothing(self, policy):
        event = ContractCreated(
            occurred_at=NOW,
            contract_id=uuid4(),
            contract_code="CTR-1",
            asset_id=uuid4(),
            investor_id=uuid4(),
        )
        assert route_event(event, policy) == []
