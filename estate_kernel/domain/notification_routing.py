"""
Notification routing (``estate_kernel.domain.notification_routing``).

Responsibility
--------------
Translate one committed domain event into the notifications it causes:
in-app notices to a user or a role, and templated emails to investors
(investors have no internal account, so email is their only channel).

``route_event`` is a pure function of the event and the lifecycle policy.
The dispatcher in ``estate_services`` resolves role names to users and
performs the I/O.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union
from uuid import UUID

from estate_kernel.domain.events import (
    AssetApproved,
    AssetRejected,
    AssetSubmitted,
    ContractActivated,
    ContractExpired,
    ContractExpiring,
    ContractStatusChanged,
    DomainEvent,
    InstallmentOverdue,
    IsnadSlaBreached,
    IsnadStageAdvanced,
    IsnadStatusChanged,
)
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.domain.statuses import ContractStatus, IsnadStatus


class NotificationKind(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class UserNotice:
    """In-app notification for one internal user."""

    user_id: UUID
    kind: NotificationKind
    title: str
    message: str
    action_url: str | None = None
    related_entity_type: str | None = None
    related_entity_id: UUID | None = None


@dataclass(frozen=True)
class RoleNotice:
    """In-app notification for every user holding ``role``."""

    role: str
    kind: NotificationKind
    title: str
    message: str
    related_entity_type: str | None = None
    related_entity_id: UUID | None = None


@dataclass(frozen=True)
class InvestorEmail:
    """Templated email to an investor address."""

    to: str
    template_key: str
    model: Mapping[str, Any] = field(default_factory=dict)


NotificationIntent = Union[UserNotice, RoleNotice, InvestorEmail]

_Router = Callable[[Any, LifecyclePolicy], list[NotificationIntent]]
_ROUTES: dict[type, _Router] = {}


def _routes(event_type: type) -> Callable[[_Router], _Router]:
    def register(fn: _Router) -> _Router:
        _ROUTES[event_type] = fn
        return fn

    return register


def parse_user_id(raw: str | None) -> UUID | None:
    """Return ``raw`` as a UUID if it is one, else None.

    Actor fields are free text; only values that are user ids can be
    addressed directly.
    """
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None


def route_event(event: DomainEvent, policy: LifecyclePolicy) -> list[NotificationIntent]:
    """Return the notification intents for ``event``, in delivery order."""
    router = _ROUTES.get(type(event))
    if router is None:
        return []
    return router(event, policy)


def _money(amount) -> str:
    return f"{amount:,.2f}"


# =========================================================================
# Asset
# =========================================================================


def _asset_creator_notice(event, kind, title, message) -> list[NotificationIntent]:
    creator = parse_user_id(event.created_by)
    if creator is None:
        return []
    return [
        UserNotice(
            user_id=creator,
            kind=kind,
            title=title,
            message=message,
            action_url=f"/assets/{event.asset_id}",
            related_entity_type="Asset",
            related_entity_id=event.asset_id,
        )
    ]


@_routes(AssetSubmitted)
def _route_asset_submitted(event: AssetSubmitted, policy: LifecyclePolicy):
    intents = _asset_creator_notice(
        event,
        NotificationKind.INFO,
        "Asset Submitted for Review",
        f"Your asset '{event.asset_name}' has been submitted for review.",
    )
    intents.append(
        RoleNotice(
            role=policy.roles.reviewer,
            kind=NotificationKind.INFO,
            title="Asset Awaiting Review",
            message=f"Asset {event.asset_code} has been submitted for review.",
            related_entity_type="Asset",
            related_entity_id=event.asset_id,
        )
    )
    return intents


@_routes(AssetApproved)
def _route_asset_approved(event: AssetApproved, policy: LifecyclePolicy):
    intents = _asset_creator_notice(
        event,
        NotificationKind.SUCCESS,
        "Asset Approved",
        f"Your asset '{event.asset_name}' has been approved and is now visible to investors.",
    )
    intents.append(
        RoleNotice(
            role=policy.roles.admin,
            kind=NotificationKind.SUCCESS,
            title="Asset Approved",
            message=f"Asset {event.asset_code} has been approved.",
            related_entity_type="Asset",
            related_entity_id=event.asset_id,
        )
    )
    return intents


@_routes(AssetRejected)
def _route_asset_rejected(event: AssetRejected, policy: LifecyclePolicy):
    return _asset_creator_notice(
        event,
        NotificationKind.WARNING,
        "Asset Rejected",
        f"Your asset '{event.asset_name}' has been rejected. Reason: {event.reason}",
    )


# =========================================================================
# ISNAD
# =========================================================================

_ISNAD_TITLES: dict[IsnadStatus, str] = {
    IsnadStatus.PENDING_VERIFICATION: "ISNAD Form Awaiting Verification",
    IsnadStatus.VERIFIED_FILLED: "ISNAD Form Ready for Review",
    IsnadStatus.INVESTMENT_AGENCY_REVIEW: "ISNAD Form Ready for Agency Review",
    IsnadStatus.PENDING_CEO: "ISNAD Package Awaiting CEO Approval",
    IsnadStatus.PENDING_MINISTER: "ISNAD Package Awaiting Minister Approval",
    IsnadStatus.APPROVED: "ISNAD Form Approved",
    IsnadStatus.CHANGES_REQUESTED: "ISNAD Form Returned for Changes",
    IsnadStatus.REJECTED: "ISNAD Form Rejected",
}

_SUBMITTER_NOTIFIED = frozenset({
    IsnadStatus.CHANGES_REQUESTED,
    IsnadStatus.REJECTED,
    IsnadStatus.APPROVED,
})


@_routes(IsnadStatusChanged)
def _route_isnad_status_changed(event: IsnadStatusChanged, policy: LifecyclePolicy):
    status = IsnadStatus(event.new_status)
    title = _ISNAD_TITLES.get(status, f"ISNAD Form Status: {status.value}")
    message = f"ISNAD form '{event.reference_number}' has been moved to {status.value}."
    if event.reason:
        message = f"{message} Reason: {event.reason}"

    intents: list[NotificationIntent] = [
        RoleNotice(
            role=policy.isnad.notify_role_for(status),
            kind=NotificationKind.INFO,
            title=title,
            message=message,
            related_entity_type="IsnadForm",
            related_entity_id=event.form_id,
        )
    ]

    if status in _SUBMITTER_NOTIFIED:
        submitter = parse_user_id(event.submitted_by)
        if submitter is not None:
            intents.append(
                UserNotice(
                    user_id=submitter,
                    kind=(
                        NotificationKind.SUCCESS
                        if status is IsnadStatus.APPROVED
                        else NotificationKind.WARNING
                    ),
                    title=title,
                    message=message,
                    action_url=f"/isnad-forms/{event.form_id}",
                    related_entity_type="IsnadForm",
                    related_entity_id=event.form_id,
                )
            )
    return intents


@_routes(IsnadStageAdvanced)
def _route_isnad_stage_advanced(event: IsnadStageAdvanced, policy: LifecyclePolicy):
    return [
        RoleNotice(
            role=policy.isnad.role_for_stage_label(event.new_stage),
            kind=NotificationKind.INFO,
            title="ISNAD Stage Advanced",
            message=(
                f"ISNAD form {event.reference_number} has moved to stage: "
                f"{event.new_stage}"
            ),
            related_entity_type="IsnadForm",
            related_entity_id=event.form_id,
        )
    ]


@_routes(IsnadSlaBreached)
def _route_isnad_sla_breached(event: IsnadSlaBreached, policy: LifecyclePolicy):
    title = "ISNAD SLA Breached"
    message = (
        f"ISNAD form '{event.reference_number}' has breached its SLA deadline. "
        f"Current stage: {event.current_stage}. "
        f"Deadline was: {event.sla_deadline:%Y-%m-%d %H:%M}."
    )
    roles = [policy.roles.admin]
    stage_role = policy.isnad.breach_role_for(IsnadStatus(event.status))
    if stage_role and stage_role not in roles:
        roles.append(stage_role)
    return [
        RoleNotice(
            role=role,
            kind=NotificationKind.ERROR,
            title=title,
            message=message,
            related_entity_type="IsnadForm",
            related_entity_id=event.form_id,
        )
        for role in roles
    ]


# =========================================================================
# Contract / Installment
# =========================================================================

_CONTRACT_TITLES: dict[ContractStatus, str] = {
    ContractStatus.ACTIVE: "Contract Activated",
    ContractStatus.EXPIRING: "Contract Expiring Soon",
    ContractStatus.EXPIRED: "Contract Expired",
    ContractStatus.CANCELLED: "Contract Cancelled",
    ContractStatus.COMPLETED: "Contract Completed",
}


def _contract_message(status: ContractStatus, code: str, reason: str | None) -> str:
    if status is ContractStatus.ACTIVE:
        return (
            f"Contract '{code}' is now active. "
            "Installment payments will begin according to schedule."
        )
    if status is ContractStatus.EXPIRING:
        return f"Contract '{code}' will expire in 30 days. Please review for renewal."
    if status is ContractStatus.EXPIRED:
        return f"Contract '{code}' has expired."
    if status is ContractStatus.CANCELLED:
        return f"Contract '{code}' has been cancelled. Reason: {reason or ''}".rstrip()
    if status is ContractStatus.COMPLETED:
        return f"Contract '{code}' has been completed successfully."
    return f"Contract '{code}' status changed to {status.value}."


@_routes(ContractStatusChanged)
def _route_contract_status_changed(event: ContractStatusChanged, policy: LifecyclePolicy):
    status = ContractStatus(event.new_status)
    return [
        RoleNotice(
            role=policy.roles.admin,
            kind=NotificationKind.INFO,
            title=_CONTRACT_TITLES.get(status, f"Contract Status: {status.value}"),
            message=_contract_message(status, event.contract_code, event.reason),
            related_entity_type="Contract",
            related_entity_id=event.contract_id,
        )
    ]


@_routes(ContractActivated)
def _route_contract_activated(event: ContractActivated, policy: LifecyclePolicy):
    if not event.investor_email:
        return []
    return [
        InvestorEmail(
            to=event.investor_email,
            template_key="ContractActivated",
            model={
                "contract_code": event.contract_code,
                "installment_count": event.installment_count,
            },
        )
    ]


@_routes(ContractExpiring)
def _route_contract_expiring(event: ContractExpiring, policy: LifecyclePolicy):
    return [
        RoleNotice(
            role=policy.roles.admin,
            kind=NotificationKind.WARNING,
            title="Contract Expiring Soon",
            message=(
                f"Contract '{event.contract_code}' will expire on "
                f"{event.end_date.isoformat()}. Please review for renewal."
            ),
            related_entity_type="Contract",
            related_entity_id=event.contract_id,
        )
    ]


@_routes(ContractExpired)
def _route_contract_expired(event: ContractExpired, policy: LifecyclePolicy):
    return [
        RoleNotice(
            role=policy.roles.admin,
            kind=NotificationKind.INFO,
            title="Contract Expired",
            message=f"Contract '{event.contract_code}' has expired.",
            related_entity_type="Contract",
            related_entity_id=event.contract_id,
        )
    ]


@_routes(InstallmentOverdue)
def _route_installment_overdue(event: InstallmentOverdue, policy: LifecyclePolicy):
    message = (
        f"Installment #{event.sequence_number} for contract '{event.contract_code}' "
        f"(Amount: {_money(event.amount_due)}) is overdue. "
        f"Due date was {event.due_date.isoformat()}."
    )
    intents: list[NotificationIntent] = []
    if event.investor_email:
        intents.append(
            InvestorEmail(
                to=event.investor_email,
                template_key="InstallmentOverdue",
                model={
                    "installment_number": event.sequence_number,
                    "contract_code": event.contract_code,
                    "amount": _money(event.amount_due),
                    "due_date": event.due_date.isoformat(),
                },
            )
        )
    for role in (policy.roles.admin, policy.roles.contract_manager):
        intents.append(
            RoleNotice(
                role=role,
                kind=NotificationKind.WARNING,
                title="Installment Overdue",
                message=message,
                related_entity_type="Installment",
                related_entity_id=event.installment_id,
            )
        )
    return intents
