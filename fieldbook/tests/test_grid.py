import pytest

from fieldbook.app.core.errors import InvalidWindow, ValidationError
from fieldbook.app.scheduling import grid
from fieldbook.app.scheduling.clock import MINUTES_PER_DAY, ServiceClock, format_time, parse_time
from fieldbook.app.services.models import Slot


def _duration(slot: Slot) -> int:
    return (parse_time(slot.end) - parse_time(slot.start)) % MINUTES_PER_DAY


def test_default_grid_matches_service_day():
    slots = grid.generate("15:30", "05:00", 90)

    assert slots[0] == Slot(start="15:30", end="17:00")
    assert Slot(start="23:00", end="00:30") in slots
    assert slots[-1] == Slot(start="03:30", end="05:00")
    assert [s.start for s in slots] == [
        "15:30", "17:00", "18:30", "20:00", "21:30", "23:00", "00:30", "02:00", "03:30",
    ]


@pytest.mark.parametrize(
    "window_start, window_end, duration",
    [
        ("15:30", "05:00", 90),
        ("08:00", "22:00", 60),
        ("22:15", "01:00", 45),
        ("00:00", "23:59", 120),
        ("18:00", "18:01", 30),
    ],
)
def test_grid_is_ordered_unique_and_fixed_length(window_start, window_end, duration):
    slots = grid.generate(window_start, window_end, duration)
    start = parse_time(window_start)
    # Position of each start on the extended clock
    offsets = [(parse_time(s.start) - start) % MINUTES_PER_DAY for s in slots]

    assert slots
    assert offsets == sorted(offsets)
    assert len(set(offsets)) == len(offsets)
    assert all(_duration(s) == duration for s in slots)


def test_grid_is_deterministic():
    assert grid.generate("15:30", "05:00", 90) == grid.generate("15:30", "05:00", 90)


def test_equal_window_bounds_are_rejected():
    with pytest.raises(InvalidWindow):
        grid.generate("15:30", "15:30", 90)


@pytest.mark.parametrize("duration", [0, -90])
def test_non_positive_duration_is_rejected(duration):
    with pytest.raises(InvalidWindow):
        grid.generate("15:30", "05:00", duration)


def test_malformed_window_is_a_configuration_error():
    with pytest.raises(InvalidWindow):
        grid.generate("25:00", "05:00", 90)


def test_split_range_into_ninety_minute_pieces():
    assert grid.split_range("13:00", "16:00", 90) == [
        Slot(start="13:00", end="14:30"),
        Slot(start="14:30", end="16:00"),
    ]


def test_split_range_keeps_short_remainder():
    assert grid.split_range("13:00", "17:00", 90) == [
        Slot(start="13:00", end="14:30"),
        Slot(start="14:30", end="16:00"),
        Slot(start="16:00", end="17:00"),
    ]


def test_split_range_across_midnight():
    assert grid.split_range("23:00", "02:00", 90) == [
        Slot(start="23:00", end="00:30"),
        Slot(start="00:30", end="02:00"),
    ]


def test_split_range_shorter_than_one_slot():
    assert grid.split_range("20:00", "20:45", 90) == [Slot(start="20:00", end="20:45")]


def test_split_range_rejects_empty_range():
    with pytest.raises(ValidationError):
        grid.split_range("20:00", "20:00")


def test_parse_time_drops_seconds():
    assert parse_time("16:00:59") == parse_time("16:00") == 960
    assert format_time(960) == "16:00"
    assert format_time(1470) == "00:30"


@pytest.mark.parametrize("value", ["", "7", "24:00", "12:60", "ab:cd", "12-30"])
def test_parse_time_rejects_garbage(value):
    with pytest.raises(ValidationError):
        parse_time(value)


def test_service_clock_moves_early_morning_to_next_day():
    clock = ServiceClock("05:00")

    assert clock.position("00:30").day_offset == 1
    assert clock.position("15:30").day_offset == 0
    assert clock.span("23:00", "00:30") == (1380, 1470)
    assert clock.span("03:30", "05:00") == (1650, 1740)
    assert clock.sort_key("02:00") > clock.sort_key("23:00")


def test_bounded_span_accepts_ranges_inside_one_service_day():
    clock = ServiceClock("05:00")

    assert clock.bounded_span("17:00", "18:30") == (1020, 1110)
    assert clock.bounded_span("23:00", "00:30") == (1380, 1470)
    assert clock.bounded_span("03:30", "05:00") == (1650, 1740)


@pytest.mark.parametrize(
    "start, end",
    [("17:00", "16:00"), ("03:00", "16:00"), ("04:00", "06:00"), ("18:00", "18:00")],
)
def test_bounded_span_refuses_reversed_or_overflowing_ranges(start, end):
    with pytest.raises(ValidationError):
        ServiceClock("05:00").bounded_span(start, end)


def test_split_range_on_service_clock_refuses_reversed_range():
    clock = ServiceClock("05:00")

    assert grid.split_range("23:00", "02:00", 90, clock=clock) == [
        Slot(start="23:00", end="00:30"),
        Slot(start="00:30", end="02:00"),
    ]
    with pytest.raises(ValidationError):
        grid.split_range("17:00", "16:00", 90, clock=clock)
