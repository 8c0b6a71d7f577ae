"""
Settings Loader (``estate_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``estate_config.schema`` dataclasses.  The single public entry point for
runtime settings is ``estate_config.get_active_settings()``.

Invariants enforced
-------------------
* Every status key in the ISNAD maps must be an ``IsnadStatus`` value;
  unknown keys raise ``ValueError`` naming the offending key.
* Day counts must be non-negative integers.
* Every parsed mapping is read-only (``MappingProxyType``).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required sections  -> ``KeyError`` propagates.
* Unknown status keys or bad values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from estate_config.schema import (
    IsnadSettings,
    RoleSettings,
    SweepSettings,
    WorkflowSettings,
)
from estate_kernel.domain.statuses import IsnadStatus


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _status_key(section: str, raw: Any) -> IsnadStatus:
    try:
        return IsnadStatus(str(raw))
    except ValueError:
        raise ValueError(
            f"isnad.{section}: unknown ISNAD status {raw!r}"
        ) from None


def _days(section: str, key: Any, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(
            f"isnad.{section}.{key}: expected a non-negative integer, got {value!r}"
        )
    return value


def parse_status_map(section: str, data: dict[str, Any] | None) -> MappingProxyType:
    """Parse ``{status_value: str}`` into a read-only IsnadStatus-keyed map."""
    return MappingProxyType({
        _status_key(section, key): str(value)
        for key, value in (data or {}).items()
    })


def parse_sla_map(section: str, data: dict[str, Any] | None) -> MappingProxyType:
    return MappingProxyType({
        _status_key(section, key): _days(section, key, value)
        for key, value in (data or {}).items()
    })


def parse_isnad(data: dict[str, Any]) -> IsnadSettings:
    return IsnadSettings(
        stage_by_status=parse_status_map("stage_by_status", data.get("stage_by_status")),
        sla_days_by_status=parse_sla_map("sla_days_by_status", data.get("sla_days_by_status")),
        notify_role_by_status=parse_status_map(
            "notify_role_by_status", data.get("notify_role_by_status")
        ),
        default_notify_role=str(data.get("default_notify_role", "Reviewer")),
        breach_role_by_status=parse_status_map(
            "breach_role_by_status", data.get("breach_role_by_status")
        ),
        stage_advance_sla_days=_days(
            "stage_advance_sla_days", "value", data.get("stage_advance_sla_days", 5)
        ),
        stage_role_by_label=MappingProxyType({
            str(label).lower(): str(role)
            for label, role in (data.get("stage_role_by_label") or {}).items()
        }),
        default_stage_role=str(data.get("default_stage_role", "Reviewer")),
    )


def parse_roles(data: dict[str, Any]) -> RoleSettings:
    return RoleSettings(
        admin=data["admin"],
        contract_manager=data["contract_manager"],
        reviewer=data["reviewer"],
        asset_manager=data["asset_manager"],
    )


def parse_sweep(data: dict[str, Any] | None) -> SweepSettings:
    data = data or {}
    interval = data.get("interval_hours", 24)
    delay = data.get("initial_delay_seconds", 0)
    if interval <= 0:
        raise ValueError(f"sweep.interval_hours must be positive, got {interval!r}")
    if delay < 0:
        raise ValueError(f"sweep.initial_delay_seconds must be >= 0, got {delay!r}")
    return SweepSettings(interval_hours=interval, initial_delay_seconds=delay)


def parse_settings(data: dict[str, Any], source: str = "<memory>") -> WorkflowSettings:
    """
    Parse a settings dict into ``WorkflowSettings``.

    Raises:
        KeyError: if the roles or isnad sections are missing.
        ValueError: on unknown status keys or invalid values.
    """
    window = data.get("contracts", {}).get("expiry_window_days", 30)
    if isinstance(window, bool) or not isinstance(window, int) or window < 0:
        raise ValueError(
            f"contracts.expiry_window_days: expected a non-negative integer, got {window!r}"
        )

    return WorkflowSettings(
        version=int(data.get("version", 1)),
        database_url=str(data.get("database", {}).get("url", "sqlite:///estate.db")),
        sweep=parse_sweep(data.get("sweep")),
        expiry_window_days=window,
        system_actor=str(data.get("actors", {}).get("system", "system")),
        roles=parse_roles(data["roles"]),
        isnad=parse_isnad(data["isnad"]),
        checksum=compute_checksum(data),
        source=source,
    )


def load_settings(path: Path) -> WorkflowSettings:
    """Load and parse one settings file."""
    return parse_settings(load_yaml_file(path), source=str(path))
