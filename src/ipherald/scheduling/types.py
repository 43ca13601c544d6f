"""Schedule types.

Public types:
- Schedule: Offset and interval that define the boundary grid
- NextRun: Result of the next-run computation
- Trigger: What caused a cycle to run
- SchedulerState: Run loop state
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import NamedTuple

IPAddress = IPv4Address | IPv6Address


@dataclass(frozen=True)
class Schedule:
    """Boundary grid: every instant congruent to ``offset`` modulo ``interval``."""

    offset: datetime
    interval: timedelta

    def __post_init__(self) -> None:
        if self.interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.offset.tzinfo is None:
            object.__setattr__(self, "offset", self.offset.replace(tzinfo=UTC))


class NextRun(NamedTuple):
    next_run: datetime
    run_now: bool
    was_advanced: bool


class Trigger(Enum):
    STARTUP = "startup"
    TIMER = "timer"
    WAKE = "wake"


class SchedulerState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    EXECUTING = "executing"
    STOPPED = "stopped"
