"""
Slot grid generation.

Walks a service window in fixed steps and emits ``Slot`` records whose
start lies inside the window. Both the default day grid and the splitting
of admin-supplied custom ranges go through the same walk.
"""

from datetime import time

from fieldbook.app.core.errors import InvalidWindow, ValidationError
from fieldbook.app.scheduling.clock import ServiceClock, format_time, parse_time, unwrap
from fieldbook.app.services.models import Slot

DEFAULT_WINDOW_START = "15:30"
DEFAULT_WINDOW_END = "05:00"
DEFAULT_SLOT_MINUTES = 90


def _walk(start: int, end: int, step: int, clip: bool) -> list[Slot]:
    slots = []
    cursor = start
    while cursor < end:
        slot_end = cursor + step
        if clip:
            slot_end = min(slot_end, end)
        slots.append(Slot(start=format_time(cursor), end=format_time(slot_end)))
        cursor += step
    return slots


def generate(
    window_start: str | time = DEFAULT_WINDOW_START,
    window_end: str | time = DEFAULT_WINDOW_END,
    slot_duration_minutes: int = DEFAULT_SLOT_MINUTES,
) -> list[Slot]:
    """Return the canonical slots of a service window.

    A window whose end is not after its start wraps past midnight, so
    ``15:30 -> 05:00`` covers the afternoon plus the early morning of the
    next day. Every slot lasts exactly ``slot_duration_minutes``; the last
    one may run past the window end.
    """
    if slot_duration_minutes <= 0:
        raise InvalidWindow(f"Slot duration must be positive, got {slot_duration_minutes}")

    try:
        start = parse_time(window_start)
        end = parse_time(window_end)
    except ValidationError as exc:
        raise InvalidWindow(str(exc)) from exc

    if start == end:
        raise InvalidWindow(f"Window start and end are both {format_time(start)}")

    start, end = unwrap(start, end)
    return _walk(start, end, slot_duration_minutes, clip=False)


def split_range(
    range_start: str | time,
    range_end: str | time,
    slot_duration_minutes: int = DEFAULT_SLOT_MINUTES,
    clock: ServiceClock | None = None,
) -> list[Slot]:
    """Cut one coarse range into consecutive sub-slots.

    Unlike ``generate`` the final piece is clipped to the range end, so
    ``13:00-17:00`` yields ``13:00-14:30``, ``14:30-16:00``, ``16:00-17:00``.
    With a ``clock`` the range must also fit inside one service day.
    """
    if slot_duration_minutes <= 0:
        raise ValidationError(f"Slot duration must be positive, got {slot_duration_minutes}")

    if clock is not None:
        start, end = clock.bounded_span(range_start, range_end)
        return _walk(start, end, slot_duration_minutes, clip=True)

    start = parse_time(range_start)
    end = parse_time(range_end)
    if start == end:
        raise ValidationError(f"Range start and end are both {format_time(start)}")

    start, end = unwrap(start, end)
    return _walk(start, end, slot_duration_minutes, clip=True)
