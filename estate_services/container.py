"""
estate_services.container -- dependency wiring for a running process.

Responsibility:
    Builds the engine, the lifecycle policy, the notification dispatcher
    and the command surface exactly once, from loaded settings.  This is
    the single place where the lifecycle core is composed.

Usage:
    from estate_config import get_active_settings
    from estate_services.container import LifecycleContainer

    container = LifecycleContainer.from_settings(get_active_settings())
    container.commands.transition_asset(asset_id, "in_review", None, "userA")
"""

from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from estate_config import WorkflowSettings, build_lifecycle_policy
from estate_kernel.db.engine import get_session_factory, init_engine_from_url
from estate_kernel.db.immutability import register_immutability_listeners
from estate_kernel.domain.clock import Clock, SystemClock
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_services.commands import LifecycleCommands
from estate_services.email import EmailSender, LoggingEmailSender
from estate_services.notification_dispatcher import NotificationDispatcher


@dataclass(frozen=True)
class LifecycleContainer:
    settings: WorkflowSettings
    policy: LifecyclePolicy
    clock: Clock
    session_factory: sessionmaker[Session]
    dispatcher: NotificationDispatcher
    commands: LifecycleCommands

    @classmethod
    def from_settings(
        cls,
        settings: WorkflowSettings,
        *,
        database_url: str | None = None,
        clock: Clock | None = None,
        email_sender: EmailSender | None = None,
        executor: Executor | None = None,
    ) -> "LifecycleContainer":
        init_engine_from_url(database_url or settings.database_url)
        register_immutability_listeners()

        clock = clock or SystemClock()
        policy = build_lifecycle_policy(settings)
        session_factory = get_session_factory()
        dispatcher = NotificationDispatcher(
            session_factory,
            email_sender or LoggingEmailSender(),
            policy,
            clock=clock,
            executor=executor,
        )
        return cls(
            settings=settings,
            policy=policy,
            clock=clock,
            session_factory=session_factory,
            dispatcher=dispatcher,
            commands=LifecycleCommands(session_factory, dispatcher, policy, clock),
        )
