"""
SweepScheduler -- in-process fixed-delay scheduler for the reconciliation sweep.

Contract:
    ``tick()`` runs one sweep pass.  ``start()`` launches a single daemon
    thread that waits ``initial_delay_seconds``, then ticks and waits
    ``interval_seconds`` until ``stop()`` is called.

Invariants enforced:
    - One background thread per scheduler; ``start()`` on a running
      scheduler is a no-op.
    - Graceful shutdown: ``stop()`` wakes the wait and the loop exits after
      the current pass completes.
    - A failing pass is logged and the next tick proceeds normally.

Non-goals:
    - NOT a distributed scheduler (no leader election).  Running two
      schedulers is safe only because every sweep predicate is idempotent.
"""

from __future__ import annotations

import threading

from estate_batch.sweep import ReconciliationSweep, SweepReport
from estate_kernel.logging_config import get_logger

logger = get_logger("batch.scheduler")


class SweepScheduler:
    def __init__(
        self,
        sweep: ReconciliationSweep,
        interval_seconds: float = 24 * 3600,
        initial_delay_seconds: float = 0,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds!r}")
        self._sweep = sweep
        self._interval = interval_seconds
        self._initial_delay = initial_delay_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._ticks = 0

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> SweepReport | None:
        """Run one sweep pass (public for testing).

        Returns the pass report, or None if the pass itself raised.
        """
        try:
            report = self._sweep.run()
        except Exception:
            logger.exception("scheduler_tick_failed")
            return None
        finally:
            self._ticks += 1
        return report

    @property
    def tick_count(self) -> int:
        return self._ticks

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="reconciliation-sweep",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "interval_seconds": self._interval,
                "initial_delay_seconds": self._initial_delay,
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped", extra={"tick_count": self._ticks})

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stopped or ``timeout`` elapses. True if stopped."""
        return self._stop_event.wait(timeout=timeout)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop. Exits when stop_event is set."""
        if self._initial_delay and self._stop_event.wait(timeout=self._initial_delay):
            return
        while not self._stop_event.is_set():
            self.tick()
            # Wait for interval or until stopped
            self._stop_event.wait(timeout=self._interval)
