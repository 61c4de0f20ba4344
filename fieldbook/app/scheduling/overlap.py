from dataclasses import dataclass
from datetime import time

from fieldbook.app.scheduling.clock import ServiceClock


@dataclass(frozen=True)
class TimeRange:
    """Half-open ``[start, end)`` range in absolute minutes."""

    start: int
    end: int


def conflicts(a: TimeRange, b: TimeRange) -> bool:
    """True if the ranges intersect. Back-to-back ranges do not conflict."""
    return a.start < b.end and a.end > b.start


def service_range(clock: ServiceClock, start: str | time, end: str | time) -> TimeRange:
    return TimeRange(*clock.span(start, end))
