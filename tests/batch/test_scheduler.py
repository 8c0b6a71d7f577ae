"""Tests for SweepScheduler."""

import threading

import pytest

from estate_batch.scheduler import SweepScheduler
from estate_batch.sweep import SweepReport


class CountingSweep:
    def __init__(self):
        self.runs = 0
        self.ran = threading.Event()

    def run(self):
        self.runs += 1
        self.ran.set()
        return SweepReport(affected={"stub": 0})


class BrokenSweep:
    def run(self):
        raise RuntimeError("database unavailable")


class TestTick:
    def test_returns_report(self):
        sweep = CountingSweep()
        scheduler = SweepScheduler(sweep, interval_seconds=60)

        report = scheduler.tick()

        assert report.succeeded
        assert sweep.runs == 1
        assert scheduler.tick_count == 1

    def test_failing_pass_is_logged_and_counted(self, captured_logs):
        scheduler = SweepScheduler(BrokenSweep(), interval_seconds=60)

        assert scheduler.tick() is None
        assert scheduler.tick() is None

        assert scheduler.tick_count == 2
        failures = [r for r in captured_logs() if r["message"] == "scheduler_tick_failed"]
        assert len(failures) == 2
        assert failures[0]["exc_type"] == "RuntimeError"

    def test_real_sweep(self, sweep):
        scheduler = SweepScheduler(sweep, interval_seconds=60)
        report = scheduler.tick()
        assert report.total_affected == 0


class TestLifecycle:
    def test_start_runs_immediately_and_stops(self):
        sweep = CountingSweep()
        scheduler = SweepScheduler(sweep, interval_seconds=3600)

        scheduler.start()
        try:
            assert sweep.ran.wait(timeout=5)
            assert scheduler.is_running
        finally:
            scheduler.stop(timeout=5)

        assert not scheduler.is_running
        assert sweep.runs == 1
        assert scheduler.wait(timeout=0) is True

    def test_start_twice_keeps_one_thread(self):
        sweep = CountingSweep()
        scheduler = SweepScheduler(sweep, interval_seconds=3600)
        scheduler.start()
        try:
            sweep.ran.wait(timeout=5)
            scheduler.start()
            names = [t.name for t in threading.enumerate() if t.name == "reconciliation-sweep"]
            assert len(names) == 1
        finally:
            scheduler.stop(timeout=5)

    def test_stop_during_initial_delay_skips_pass(self):
        sweep = CountingSweep()
        scheduler = SweepScheduler(sweep, interval_seconds=3600, initial_delay_seconds=3600)

        scheduler.start()
        scheduler.stop(timeout=5)

        assert sweep.runs == 0
        assert not scheduler.is_running

    def test_stop_without_start(self):
        scheduler = SweepScheduler(CountingSweep(), interval_seconds=60)
        scheduler.stop()
        assert not scheduler.is_running


@pytest.mark.parametrize("interval", [0, -1])
def test_interval_must_be_positive(interval):
    with pytest.raises(ValueError):
        SweepScheduler(CountingSweep(), interval_seconds=interval)
