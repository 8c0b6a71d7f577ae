"""
Tests for AssetWorkflowService and the transition_asset command.

Service-level tests run flush-only inside the test session; command-level
tests go through LifecycleCommands so commit and dispatch are exercised.
"""

from uuid import uuid4

import pytest

from estate_kernel.domain.events import AssetApproved, AssetRejected, AssetSubmitted
from estate_kernel.exceptions import AssetNotFoundError, InvalidStatusValueError
from estate_kernel.models import Asset
from estate_kernel.services.asset_workflow_service import AssetWorkflowService


@pytest.fixture
def service(session, clock, policy):
    return AssetWorkflowService(session, clock, policy)


class TestTransitionSideEffects:
    def test_submit_for_review(self, service, make_asset, clock):
        asset = make_asset(status="draft")

        outcome = service.transition(asset.id, "InReview", None, "userA")

        assert asset.status == "in_review"
        assert asset.submitted_at == clock.now()
        assert outcome.from_status == "draft"
        assert outcome.to_status == "in_review"
        assert len(outcome.events) == 1
        assert isinstance(outcome.events[0], AssetSubmitted)
        assert asset.pending_events == outcome.events

    def test_reject_records_reason_and_hides(self, service, make_asset):
        asset = make_asset(status="in_review")

        outcome = service.transition(asset.id, "Rejected", "Missing deed", "reviewerB")

        assert asset.status == "rejected"
        assert asset.rejection_reason == "Missing deed"
        assert asset.visible_to_investors is False
        (event,) = outcome.events
        assert isinstance(event, AssetRejected)
        assert event.reason == "Missing deed"
        assert event.rejected_by == "reviewerB"

    def test_reject_without_reason_defaults_to_empty(self, service, make_asset):
        asset = make_asset(status="in_review")
        outcome = service.transition(asset.id, "rejected", None, "reviewerB")
        assert asset.rejection_reason == ""
        assert outcome.events[0].reason == ""

    def test_complete_makes_visible(self, service, make_asset, clock):
        asset = make_asset(status="in_review")

        outcome = service.transition(asset.id, "Completed", None, "reviewerB")

        assert asset.visible_to_investors is True
        assert asset.completed_at == clock.now()
        assert isinstance(outcome.events[0], AssetApproved)

    def test_return_to_draft_hides_and_counts(self, service, make_asset):
        asset = make_asset(status="completed")
        assert asset.visible_to_investors is True

        outcome = service.transition(asset.id, "Draft", None, "admin")

        assert asset.visible_to_investors is False
        assert asset.visibility_count == 1
        assert outcome.events == ()

    def test_incomplete_bulk_emits_nothing(self, service, make_asset):
        asset = make_asset(status="draft")
        outcome = service.transition(asset.id, "IncompleteBulk", None, "importer")
        assert asset.status == "incomplete_bulk"
        assert outcome.events == ()

    def test_always_stamps_actor_and_time(self, service, make_asset, clock):
        asset = make_asset(status="draft")
        service.transition(asset.id, "incomplete_bulk", None, "importer")
        assert asset.updated_by == "importer"
        assert asset.updated_at == clock.now()

    def test_any_status_reachable_from_any_other(self, service, make_asset):
        asset = make_asset(status="rejected")
        service.transition(asset.id, "completed", None, "admin")
        assert asset.status == "completed"
        assert asset.visible_to_investors is True


class TestVisibilityInvariant:
    @pytest.mark.parametrize(
        "target, visible",
        [
            ("draft", False),
            ("in_review", False),
            ("completed", True),
            ("rejected", False),
            ("incomplete_bulk", False),
        ],
    )
    def test_visible_only_when_completed(self, service, make_asset, target, visible):
        asset = make_asset(status="completed")
        service.transition(asset.id, target, None, "admin")
        assert asset.visible_to_investors is visible

    def test_completed_asset_sent_back_for_review_is_hidden(self, service, make_asset):
        asset = make_asset(status="completed")
        service.transition(asset.id, "completed", None, "admin")
        assert asset.visible_to_investors is True

        service.transition(asset.id, "in_review", None, "admin")

        assert asset.status == "in_review"
        assert asset.visible_to_investors is False


class TestFailures:
    def test_unknown_asset(self, service):
        with pytest.raises(AssetNotFoundError) as exc_info:
            service.transition(uuid4(), "in_review", None, "userA")
        assert exc_info.value.code == "ASSET_NOT_FOUND"

    def test_unknown_status_mutates_nothing(self, service, make_asset, session):
        asset = make_asset(status="draft")

        with pytest.raises(InvalidStatusValueError) as exc_info:
            service.transition(asset.id, "Published", None, "userA")

        assert exc_info.value.to_status == "Published"
        assert asset.status == "draft"
        assert asset.pending_events == ()


class TestAudit:
    def test_one_audit_row_per_transition(self, service, make_asset, session):
        from estate_kernel.selectors.audit_selector import AuditSelector

        asset = make_asset(status="draft")
        service.transition(asset.id, "in_review", None, "userA")
        service.transition(asset.id, "completed", None, "reviewerB")

        trail = AuditSelector(session).trail("Asset", asset.id)
        assert [e.changes["to_status"] for e in trail] == ["in_review", "completed"]
        assert [e.actor for e in trail] == ["userA", "reviewerB"]


# =============================================================================
# Command level: commit, then dispatch
# =============================================================================


class TestTransitionAssetCommand:
    def test_commits_and_notifies_creator_and_reviewers(
        self, commands, make_asset, make_staff, load, notifications
    ):
        creator = make_staff("AssetManager")
        reviewer = make_staff("Reviewer")
        asset = make_asset(status="draft", created_by=str(creator.id))

        outcome = commands.transition_asset(asset.id, "InReview", None, "userA")

        stored = load(Asset, asset.id)
        assert stored.status == "in_review"
        assert stored.submitted_at is not None
        assert len(outcome.events) == 1

        rows = notifications()
        assert {(n.user_id, n.title) for n in rows} == {
            (creator.id, "Asset Submitted for Review"),
            (reviewer.id, "Asset Awaiting Review"),
        }

    def test_event_buffer_cleared_after_dispatch(self, commands, make_asset):
        asset = make_asset(status="draft")
        outcome = commands.transition_asset(asset.id, "in_review", None, "userA")
        assert outcome.sources[0].pending_events == ()

    def test_failure_commits_nothing(self, commands, make_asset, load, audit_trail):
        asset = make_asset(status="draft")
        with pytest.raises(InvalidStatusValueError):
            commands.transition_asset(asset.id, "bogus", None, "userA")
        assert load(Asset, asset.id).status == "draft"
        assert audit_trail("Asset", asset.id) == ()

    def test_logs_transition_with_context(self, commands, make_asset, captured_logs):
        asset = make_asset(status="draft")
        commands.transition_asset(asset.id, "in_review", None, "userA")

        logs = captured_logs()
        record = next(r for r in logs if r["message"] == "asset_transitioned")
        assert record["command"] == "transition_asset"
        assert record["actor_id"] == "userA"
        assert record["to_status"] == "in_review"
        assert "correlation_id" in record
