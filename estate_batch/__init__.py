"""
estate_batch -- the scheduled reconciliation sweep.

    ReconciliationSweep   one pass over the time-driven sub-tasks
    SweepScheduler        background thread running passes at a fixed delay
    tasks                 sub-task protocol, registry, implementations
"""

from estate_batch.scheduler import SweepScheduler
from estate_batch.sweep import ReconciliationSweep, SweepReport

__all__ = [
    "ReconciliationSweep",
    "SweepReport",
    "SweepScheduler",
]
