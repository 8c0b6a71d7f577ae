"""
BaseService -- abstract base for the lifecycle state-machine services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every state-machine service.  Services receive a SQLAlchemy ``Session``
    and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (``estate_services.LifecycleCommands``, the reconciliation sweep, or
      a test harness) owns commit/rollback, so the entity mutation and its
      audit row land in one transaction.
    - Domain events are recorded on the aggregate and returned in the
      ``TransitionOutcome``; they are dispatched only after commit.
"""

from abc import ABC
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from estate_kernel.db.base import DomainEventSource
from estate_kernel.domain.clock import Clock
from estate_kernel.domain.events import DomainEvent
from estate_kernel.domain.lifecycle_policy import LifecyclePolicy
from estate_kernel.services.auditor_service import AuditorService

# Actor recorded when a command supplies none
DEFAULT_ACTOR = "workflow"


@dataclass(frozen=True)
class TransitionOutcome:
    """
    Result of one state-machine call.

    ``events`` are in emission order.  ``sources`` are the aggregates whose
    pending-event buffers the caller clears after dispatch.
    """

    entity_id: UUID | None
    from_status: str | None
    to_status: str | None
    events: tuple[DomainEvent, ...] = ()
    sources: tuple[DomainEventSource, ...] = field(default=(), repr=False)
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


class BaseService(ABC):
    """
    Abstract base class for the state-machine services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide predicate queries -- those belong in
          ``estate_kernel/selectors/``.
        - Does NOT deliver notifications.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        policy: LifecyclePolicy,
        auditor: AuditorService | None = None,
    ):
        self.session = session
        self._clock = clock
        self._policy = policy
        self._auditor = auditor or AuditorService(session, clock)

    @property
    def policy(self) -> LifecyclePolicy:
        return self._policy
