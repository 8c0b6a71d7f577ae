"""
NotificationDispatcher -- post-commit delivery of domain-event side effects.

Responsibility:
    Turns committed domain events into in-app notification rows and
    investor emails.  Routing is the kernel's pure ``route_event``; this
    class resolves role names to users and performs the I/O.

Architecture position:
    Services -- imperative shell.  Called by ``LifecycleCommands`` and the
    reconciliation sweep strictly AFTER their transaction has committed.

Invariants enforced:
    - Events are delivered in the order given; the intents of one event in
      the order ``route_event`` returned them.
    - Every intent is delivered inside its own error boundary and, for
      in-app rows, its own transaction.  One failed delivery never stops
      the next one and never touches the transition that caused it.
    - Nothing raised by a delivery leaves ``dispatch()``.  Failures are
      wrapped in ``NotificationDeliveryError`` and logged at WARNING.

Failure modes:
    None propagated.  ``DispatchReport.failed`` counts the failures.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from estate_kernel.db.engine import session_scope
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.events import DomainEvent
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.domain.notification_routing import (
    InvestorEmail,
    NotificationIntent,
    RoleNotice,
    UserNotice,
    route_event,
)
from estate_kernel.exceptions import NotificationDeliveryError
from estate_kernel.logging_config import get_logger
from estate_kernel.models.notification import Notification
from estate_kernel.selectors.staff_selector import StaffSelector
from estate_services.email import EmailSender

logger = get_logger("services.notification_dispatcher")


@dataclass
class DispatchReport:
    """Counts for one ``dispatch()`` call."""

    events: int = 0
    delivered: int = 0
    failed: int = 0
    errors: list[NotificationDeliveryError] = field(default_factory=list)


class NotificationDispatcher:
    """
    Delivers the notifications caused by committed domain events.

    With an ``executor``, ``publish()`` hands the batch off and returns at
    once; without one it delivers inline on the caller's thread.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        email_sender: EmailSender,
        policy: LifecyclePolicy,
        clock: Clock | None = None,
        executor: Executor | None = None,
    ):
        self._session_factory = session_factory
        self._email_sender = email_sender
        self._policy = policy
        self._clock = clock or SystemClock()
        self._executor = executor

    def publish(self, events: Iterable[DomainEvent]) -> Future | DispatchReport | None:
        """Deliver ``events``, handing off to the executor if one is set."""
        batch = tuple(events)
        if not batch:
            return None
        if self._executor is not None:
            return self._executor.submit(self.dispatch, batch)
        return self.dispatch(batch)

    def dispatch(self, events: Iterable[DomainEvent]) -> DispatchReport:
        report = DispatchReport()
        for event in events:
            report.events += 1
            try:
                intents = route_event(event, self._policy)
            except Exception as exc:
                self._record_failure(report, "routing", event.event_type, event, exc)
                continue
            for intent in intents:
                self._deliver(intent, event, report)

        logger.debug(
            "notifications_dispatched",
            extra={
                "event_count": report.events,
                "delivered": report.delivered,
                "failed": report.failed,
            },
        )
        return report

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def _deliver(
        self,
        intent: NotificationIntent,
        event: DomainEvent,
        report: DispatchReport,
    ) -> None:
        if isinstance(intent, InvestorEmail):
            channel, target = "email", intent.to
        elif isinstance(intent, RoleNotice):
            channel, target = "role", intent.role
        else:
            channel, target = "user", str(intent.user_id)

        try:
            if isinstance(intent, InvestorEmail):
                self._email_sender.send_templated(
                    intent.to, intent.template_key, dict(intent.model)
                )
                report.delivered += 1
            elif isinstance(intent, RoleNotice):
                report.delivered += self._notify_role(intent)
            else:
                self._notify_user(intent)
                report.delivered += 1
        except Exception as exc:
            self._record_failure(report, channel, target, event, exc)

    def _notify_user(self, notice: UserNotice) -> None:
        with session_scope(self._session_factory) as session:
            session.add(
                Notification(
                    user_id=notice.user_id,
                    type=notice.kind.value,
                    title=notice.title,
                    message=notice.message,
                    action_url=notice.action_url,
                    related_entity_type=notice.related_entity_type,
                    related_entity_id=notice.related_entity_id,
                    is_read=False,
                )
            )

    def _notify_role(self, notice: RoleNotice) -> int:
        """One row per active holder of the role.  Returns the row count."""
        with session_scope(self._session_factory) as session:
            user_ids = StaffSelector(session).user_ids_for_role(notice.role)
            for user_id in user_ids:
                session.add(
                    Notification(
                        user_id=user_id,
                        type=notice.kind.value,
                        title=notice.title,
                        message=notice.message,
                        related_entity_type=notice.related_entity_type,
                        related_entity_id=notice.related_entity_id,
                        is_read=False,
                    )
                )
        if not user_ids:
            logger.info(
                "role_has_no_recipients",
                extra={"role": notice.role, "title": notice.title},
            )
        return len(user_ids)

    def _record_failure(
        self,
        report: DispatchReport,
        channel: str,
        target: str,
        event: DomainEvent,
        exc: Exception,
    ) -> None:
        error = NotificationDeliveryError(channel, target, str(exc))
        report.failed += 1
        report.errors.append(error)
        logger.warning(
            "notification_delivery_failed",
            extra={
                "channel": channel,
                "target": target,
                "event_type": event.event_type,
                "error": str(exc),
                "error_code": error.code,
            },
        )
