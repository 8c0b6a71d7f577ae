"""
Pytest fixtures for the estate lifecycle test suite.

Provides:
- A fresh in-memory SQLite database per test (StaticPool, shared by every
  session and thread), with immutability listeners registered
- DeterministicClock with naive datetimes (SQLite strips tzinfo)
- The lifecycle policy built from the packaged defaults.yaml
- Recording email sender, dispatcher, commands and sweep wired together
- Factory fixtures that insert committed rows

Reads after a command go through ``load()``, which uses a fresh session so
the result reflects what the command committed.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import select

from estate_batch.sweep import ReconciliationSweep
from estate_config import DEFAULT_SETTINGS_PATH, build_lifecycle_policy, get_active_settings
from estate_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from estate_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from estate_kernel.domain.clock import DeterministicClock
from estate_kernel.domain.installment_plan import compute_contract_totals
from estate_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from estate_kernel.models import (
    Asset,
    Contract,
    Investor,
    IsnadForm,
    Notification,
    StaffRoleAssignment,
    StaffUser,
)
from estate_kernel.selectors.audit_selector import AuditSelector
from estate_services.commands import LifecycleCommands
from estate_services.email import RecordingEmailSender
from estate_services.notification_dispatcher import NotificationDispatcher

# Naive: SQLite round-trips datetimes without tzinfo
FIXED_NOW = datetime(2026, 2, 1, 12, 0, 0)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture estate_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, commands):
            commands.transition_asset(...)
            logs = captured_logs()
            assert any(r["message"] == "asset_transitioned" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("estate_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    engine = init_engine_from_url("sqlite://")
    create_tables()
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def load(session_factory):
    """Load one committed row in a fresh session (detached on return)."""

    def _load(model, entity_id):
        s = session_factory()
        try:
            obj = s.get(model, entity_id)
            if isinstance(obj, Contract):
                obj.installments  # noqa: B018 -- load before detaching
            return obj
        finally:
            s.close()

    return _load


@pytest.fixture
def audit_trail(session_factory):
    def _trail(entity_type, entity_id):
        s = session_factory()
        try:
            return AuditSelector(s).trail(entity_type, entity_id)
        finally:
            s.close()

    return _trail


@pytest.fixture
def notifications(session_factory):
    """All committed in-app notifications, oldest first."""

    def _all(user_id=None):
        s = session_factory()
        try:
            stmt = select(Notification).order_by(Notification.created_at, Notification.title)
            if user_id is not None:
                stmt = stmt.where(Notification.user_id == user_id)
            return list(s.scalars(stmt))
        finally:
            s.close()

    return _all


# =============================================================================
# Domain wiring
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(fixed_time=FIXED_NOW)


@pytest.fixture(scope="session")
def settings():
    return get_active_settings(DEFAULT_SETTINGS_PATH)


@pytest.fixture(scope="session")
def policy(settings):
    return build_lifecycle_policy(settings)


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def dispatcher(session_factory, email_sender, policy, clock):
    return NotificationDispatcher(session_factory, email_sender, policy, clock=clock)


@pytest.fixture
def commands(session_factory, dispatcher, policy, clock):
    return LifecycleCommands(session_factory, dispatcher, policy, clock)


@pytest.fixture
def sweep(session_factory, dispatcher, policy, clock):
    return ReconciliationSweep(session_factory, dispatcher, policy, clock=clock)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_staff(session):
    """Create an active staff user holding ``roles``."""

    def _make(*roles, email=None, is_active=True):
        user = StaffUser(
            email=email or f"{uuid4().hex[:8]}@estate.test",
            full_name="Test Staff",
            is_active=is_active,
        )
        session.add(user)
        session.flush()
        for role in roles:
            session.add(StaffRoleAssignment(user_id=user.id, role_name=role))
        session.commit()
        return user

    return _make


@pytest.fixture
def make_asset(session):
    def _make(status="draft", created_by=None, code=None, name="Riyadh School Plot 7"):
        asset = Asset(
            code=code or f"AST-{uuid4().hex[:8]}",
            name=name,
            status=status,
            visible_to_investors=status == "completed",
            created_by=created_by,
        )
        session.add(asset)
        session.commit()
        return asset

    return _make


@pytest.fixture
def make_investor(session):
    def _make(email="investor@example.com", name="Al Noor Holdings"):
        investor = Investor(
            code=f"INV-{uuid4().hex[:8]}",
            name=name,
            email=email,
        )
        session.add(investor)
        session.commit()
        return investor

    return _make


@pytest.fixture
def make_isnad_form(session, make_asset):
    def _make(
        status="draft",
        created_by=None,
        sla_deadline=None,
        sla_status="on_track",
        current_stage=None,
    ):
        asset = make_asset()
        form = IsnadForm(
            reference_number=f"ISN-{uuid4().hex[:8]}",
            asset_id=asset.id,
            title="Land allocation request",
            status=status,
            current_stage=current_stage,
            sla_deadline=sla_deadline,
            sla_status=sla_status,
            created_by=created_by,
        )
        session.add(form)
        session.commit()
        return form

    return _make


@pytest.fixture
def make_contract(session, make_asset, make_investor):
    """Insert a contract row directly (bypassing create_contract)."""

    def _make(
        status="draft",
        annual=Decimal("1250000"),
        vat=Decimal("15"),
        duration=1,
        start=date(2025, 1, 5),
        end=date(2026, 1, 4),
        installment_count=6,
        installment_frequency="monthly",
        investor_email="investor@example.com",
    ):
        asset = make_asset(status="completed")
        investor = make_investor(email=investor_email)
        total_annual, total = compute_contract_totals(annual, vat, duration)
        contract = Contract(
            contract_code=f"CTR-{uuid4().hex[:8]}",
            asset_id=asset.id,
            investor_id=investor.id,
            status=status,
            annual_rental_amount=annual,
            vat_rate=vat,
            total_annual_amount=total_annual,
            total_contract_amount=total,
            contract_duration_years=duration,
            start_date=start,
            end_date=end,
            installment_count=installment_count,
            installment_frequency=installment_frequency,
        )
        session.add(contract)
        session.commit()
        return contract

    return _make
