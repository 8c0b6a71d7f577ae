"""
AssetWorkflowService -- asset registration/review state machine.

Responsibility:
    Moves an asset between Draft, InReview, Completed, Rejected and
    IncompleteBulk, applying the per-target side effects and recording the
    matching domain event and audit row.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only.

Transition policy:
    Any status may be set from any other; only enum membership is checked.
    Callers that need a stricter graph enforce it before calling.

Side effects per target:
    in_review        submitted_at = now, visible = False      -> AssetSubmitted
    completed        completed_at = now, visible = True       -> AssetApproved
    rejected         rejection_reason, visible = False        -> AssetRejected
    draft            visible = False, visibility_count += 1   (no event)
    incomplete_bulk  visible = False                          (no event)

visible_to_investors is True exactly when the target is completed.
Every call sets updated_by/updated_at regardless of branch.
"""

from uuid import UUID

from estate_kernel.domain.events import (
    AssetApproved,
    AssetRejected,
    AssetSubmitted,
)
from estate_kernel.domain.statuses import AssetStatus, parse_status
from estate_kernel.exceptions import AssetNotFoundError, InvalidStatusValueError
from estate_kernel.logging_config import get_logger
from estate_kernel.models.asset import Asset
from estate_kernel.models.audit_log import AuditAction
from estate_kernel.services.base import BaseService, TransitionOutcome

logger = get_logger("services.asset_workflow")


class AssetWorkflowService(BaseService):
    """State machine for ``Asset.status``."""

    def transition(
        self,
        asset_id: UUID,
        target_status: AssetStatus | str,
        reason: str | None,
        actor: str,
    ) -> TransitionOutcome:
        """
        Move an asset to ``target_status``.

        Raises:
            AssetNotFoundError: No asset with ``asset_id``.
            InvalidStatusValueError: ``target_status`` is not an AssetStatus.
        """
        asset = self.session.get(Asset, asset_id)
        if asset is None:
            raise AssetNotFoundError(str(asset_id))

        target = parse_status(AssetStatus, target_status)
        if target is None:
            raise InvalidStatusValueError("Asset", str(asset_id), target_status)

        now = self._clock.now()
        previous = asset.status
        asset.status = target.value
        asset.current_stage = target.value
        asset.visible_to_investors = target is AssetStatus.COMPLETED
        events = []

        if target is AssetStatus.IN_REVIEW:
            asset.submitted_at = now
            events.append(
                AssetSubmitted(
                    occurred_at=now,
                    asset_id=asset.id,
                    asset_code=asset.code,
                    asset_name=asset.name,
                    submitted_by=actor,
                    created_by=asset.created_by or "",
                )
            )
        elif target is AssetStatus.COMPLETED:
            asset.completed_at = now
            events.append(
                AssetApproved(
                    occurred_at=now,
                    asset_id=asset.id,
                    asset_code=asset.code,
                    asset_name=asset.name,
                    approved_by=actor,
                    created_by=asset.created_by or "",
                )
            )
        elif target is AssetStatus.REJECTED:
            asset.rejection_reason = reason or ""
            events.append(
                AssetRejected(
                    occurred_at=now,
                    asset_id=asset.id,
                    asset_code=asset.code,
                    asset_name=asset.name,
                    rejected_by=actor,
                    created_by=asset.created_by or "",
                    reason=reason or "",
                )
            )
        elif target is AssetStatus.DRAFT:
            asset.visibility_count = (asset.visibility_count or 0) + 1

        for event in events:
            asset.record_event(event)

        asset.updated_by = actor
        asset.updated_at = now
        self.session.flush()

        self._auditor.record(
            entity_type="Asset",
            entity_id=asset.id,
            action=AuditAction.ASSET_STATUS_CHANGED,
            changes={
                "from_status": previous,
                "to_status": target.value,
                "reason": reason,
                "visible_to_investors": asset.visible_to_investors,
            },
            actor=actor,
        )

        logger.info(
            "asset_transitioned",
            extra={
                "asset_id": str(asset.id),
                "asset_code": asset.code,
                "from_status": previous,
                "to_status": target.value,
            },
        )

        return TransitionOutcome(
            entity_id=asset.id,
            from_status=previous,
            to_status=target.value,
            events=tuple(events),
            sources=(asset,),
        )
