"""
Module: estate_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the type annotation map for consistent
    column types, the TrackedBase mixin for timestamps, and the pending
    domain-event buffer carried by every aggregate root.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys: every model inherits a uuid4-generated primary key.
    - Decimal precision: Python Decimal maps to Numeric(38, 9).  NEVER use
      float for monetary amounts.
    - Pending events live on the instance only; they are never persisted and
      are cleared by the command layer once they have been dispatched.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal maps to Numeric(38, 9).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with creation and last-update timestamps.

    Contract:
        created_at is stamped by the database on INSERT.  updated_at is
        optional and is written by the owning service from the injected
        Clock, so that every stage change carries a deterministic time.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class DomainEventSource:
    """
    Mixin giving an aggregate root a buffer of pending domain events.

    Instances loaded from the database bypass ``__init__``, so the buffer is
    created lazily in the instance ``__dict__`` rather than as a mapped or
    constructor-initialised attribute.
    """

    _EVENTS_KEY = "_pending_domain_events"

    def record_event(self, event: Any) -> None:
        """Append a domain event in emission order."""
        self.__dict__.setdefault(self._EVENTS_KEY, []).append(event)

    @property
    def pending_events(self) -> tuple[Any, ...]:
        return tuple(self.__dict__.get(self._EVENTS_KEY, ()))

    def clear_events(self) -> None:
        self.__dict__.pop(self._EVENTS_KEY, None)


UUID = PyUUID
