"""
Run the reconciliation sweep.

Usage:
  python -m estate_batch [--config PATH] [--db-url URL] [--once] [--create-tables]

Without ``--once`` the sweep runs on a background thread at the configured
interval until interrupted.
"""

from __future__ import annotations

import argparse
import sys

from estate_batch.scheduler import SweepScheduler
from estate_batch.sweep import ReconciliationSweep
from estate_config import get_active_settings
from estate_kernel.db.engine import create_tables
from estate_kernel.logging_config import get_logger
from estate_services.container import LifecycleContainer

logger = get_logger("batch.main")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the estate reconciliation sweep")
    p.add_argument("--config", default=None, help="Settings YAML (default: ESTATE_CONFIG_PATH or packaged defaults)")
    p.add_argument("--db-url", default=None, help="Database URL (default: from settings)")
    p.add_argument("--once", action="store_true", help="Run a single pass and exit")
    p.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = get_active_settings(args.config)
    container = LifecycleContainer.from_settings(settings, database_url=args.db_url)
    if args.create_tables:
        create_tables()

    sweep = ReconciliationSweep(
        container.session_factory,
        container.dispatcher,
        container.policy,
        clock=container.clock,
    )

    if args.once:
        report = sweep.run()
        return 0 if report.succeeded else 1

    scheduler = SweepScheduler(
        sweep,
        interval_seconds=settings.sweep.interval_seconds,
        initial_delay_seconds=settings.sweep.initial_delay_seconds,
    )
    scheduler.start()
    try:
        while scheduler.is_running:
            scheduler.wait(timeout=1.0)
    except KeyboardInterrupt:
        logger.info("sweep_interrupted")
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
