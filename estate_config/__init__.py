"""
estate_config -- single public entrypoint for lifecycle workflow settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads settings files or
    environment variables directly.  The kernel receives its routing tables
    through ``build_lifecycle_policy()``.

Architecture position:
    Configuration -- sits above ``estate_kernel`` and below
    ``estate_services`` / ``estate_batch``.  The kernel MUST NEVER import
    from ``estate_config``.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown ISNAD status keys or invalid values.
    - ``KeyError`` -- a required section is missing.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``workflow_settings_loaded`` log entry with the source path, version
    and checksum.
"""

from __future__ import annotations

import os
from pathlib import Path

from estate_config.bridges import build_lifecycle_policy
from estate_config.loader import load_settings, parse_settings
from estate_config.schema import (
    IsnadSettings,
    RoleSettings,
    SweepSettings,
    WorkflowSettings,
)
from estate_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_PATH_ENV = "ESTATE_CONFIG_PATH"


def get_active_settings(path: Path | str | None = None) -> WorkflowSettings:
    """The ONLY public settings entrypoint.

    Resolution order: the explicit ``path`` argument, then the
    ``ESTATE_CONFIG_PATH`` environment variable, then the packaged
    ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the settings fail validation.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        path = Path(env_path) if env_path else DEFAULT_SETTINGS_PATH

    settings = load_settings(Path(path))

    _logger.info(
        "workflow_settings_loaded",
        extra={
            "source": settings.source,
            "settings_version": settings.version,
            "checksum": settings.checksum,
            "sweep_interval_hours": settings.sweep.interval_hours,
        },
    )
    return settings


__all__ = [
    "CONFIG_PATH_ENV",
    "DEFAULT_SETTINGS_PATH",
    "IsnadSettings",
    "RoleSettings",
    "SweepSettings",
    "WorkflowSettings",
    "build_lifecycle_policy",
    "get_active_settings",
    "parse_settings",
]
