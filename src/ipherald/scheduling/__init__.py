"""Scheduling subsystem: when to check the address and what to do about it.

Public API:
- Scheduler: Run loop multiplexing timer, wake events and stop
- compute_next_run: Pure next-boundary computation

Types:
- Schedule: Offset/interval boundary grid
- NextRun: (next_run, run_now, was_advanced)
- Trigger, SchedulerState
"""

from ipherald.scheduling.scheduler import Scheduler
from ipherald.scheduling.timing import compute_next_run
from ipherald.scheduling.types import (
    IPAddress,
    NextRun,
    Schedule,
    SchedulerState,
    Trigger,
)

__all__ = [
    "IPAddress",
    "NextRun",
    "Schedule",
    "Scheduler",
    "SchedulerState",
    "Trigger",
    "compute_next_run",
]
