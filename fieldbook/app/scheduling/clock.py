"""
Minute arithmetic for service days that run past midnight.

Every wall-clock value is reduced to minutes since midnight. A ServiceClock
then places it on an extended clock as (day_offset, minute_of_day) so that
ranges crossing midnight compare as plain integers.
"""

from dataclasses import dataclass
from datetime import time

from fieldbook.app.core.errors import ValidationError

MINUTES_PER_DAY = 24 * 60


def parse_time(value: str | time) -> int:
    """Return minutes since midnight for "HH:MM", "HH:MM:SS" or a time object.

    Seconds are discarded; the engine works at minute resolution only.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        raise ValidationError(f"Unsupported time value: {value!r}")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValidationError(f"Time must be HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if hour > 23 or minute > 59:
        raise ValidationError(f"Time out of range: {value!r}")
    return hour * 60 + minute


def format_time(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def to_time(value: str | time) -> time:
    minutes = parse_time(value)
    return time(minutes // 60, minutes % 60)


def unwrap(start: int, end: int) -> tuple[int, int]:
    """Push an end that is not after its start onto the next day."""
    if end <= start:
        end += MINUTES_PER_DAY
    return start, end


@dataclass(frozen=True)
class ClockTime:
    day_offset: int
    minute_of_day: int

    @property
    def absolute(self) -> int:
        return self.day_offset * MINUTES_PER_DAY + self.minute_of_day


class ServiceClock:
    """Places times of one service day on a single increasing axis.

    Anything earlier than ``rollover`` is treated as the early morning of the
    following calendar day.
    """

    def __init__(self, rollover: str | time = "05:00"):
        self.rollover = parse_time(rollover)

    def position(self, value: str | time) -> ClockTime:
        minute = parse_time(value)
        return ClockTime(1 if minute < self.rollover else 0, minute)

    def span(self, start: str | time, end: str | time) -> tuple[int, int]:
        """Absolute ``[start, end)`` minutes of a range within one service day."""
        return unwrap(self.position(start).absolute, self.position(end).absolute)

    def bounded_span(self, start: str | time, end: str | time) -> tuple[int, int]:
        """Like ``span`` but refuses ranges that do not fit one service day.

        An end at or before the rollover belongs to the next calendar day, so
        ``23:00-05:00`` is accepted while ``17:00-16:00`` and ``03:00-16:00``
        raise ValidationError.
        """
        start_abs = self.position(start).absolute
        end_minute = parse_time(end)
        end_abs = end_minute + (MINUTES_PER_DAY if end_minute <= self.rollover else 0)
        if not self.rollover <= start_abs < end_abs <= self.rollover + MINUTES_PER_DAY:
            raise ValidationError(
                f"{format_time(start_abs)}-{format_time(end_abs)} is not a forward range within one service day"
            )
        return start_abs, end_abs

    def sort_key(self, value: str | time) -> int:
        return self.position(value).absolute
