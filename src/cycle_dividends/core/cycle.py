"""
Cycle clock kernel.

A fixed-duration recurring window whose boundary is advanced lazily, one
duration per call, by whichever operation observes it first.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class CycleClock:
    """Start of the current cycle and the fixed cycle length."""

    cycle_start_time: int
    cycle_duration: int

    def __post_init__(self) -> None:
        if not isinstance(self.cycle_start_time, int) or isinstance(self.cycle_start_time, bool):
            raise TypeError("cycle_start_time must be an int")
        if not isinstance(self.cycle_duration, int) or isinstance(self.cycle_duration, bool):
            raise TypeError("cycle_duration must be an int")
        if self.cycle_start_time < 0:
            raise ValueError(f"cycle_start_time must be non-negative: {self.cycle_start_time}")
        if self.cycle_duration <= 0:
            raise ValueError(f"cycle_duration must be positive: {self.cycle_duration}")


def next_cycle_start_time(clock: CycleClock) -> int:
    return clock.cycle_start_time + clock.cycle_duration


def is_due(clock: CycleClock, now: int) -> bool:
    return now >= next_cycle_start_time(clock)


def advance_if_due(clock: CycleClock, now: int) -> CycleClock:
    """Move the window forward by a single duration if ``now`` reached its end.

    Missed windows are not fast-forwarded: a clock lagging several cycles
    behind needs one call per cycle to catch up.
    """
    if not is_due(clock, now):
        return clock
    return replace(clock, cycle_start_time=next_cycle_start_time(clock))
