"""Database layer - engine, base classes, and append-only guards."""

from estate_kernel.db.base import UUID, Base, DomainEventSource, TrackedBase, UUIDString
from estate_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from estate_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
    "Base",
    "DomainEventSource",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
