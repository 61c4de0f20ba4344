from datetime import date, datetime

import pytest

from fieldbook.app.services.models import Audience, BookingEvent, ReservationStatus
from fieldbook.app.services.reminders import ReminderService


pytestmark = pytest.mark.asyncio(loop_scope="module")


def _service(store, notifier, clock, now):
    return ReminderService(store, notifier, clock, lead_minutes=120, now=lambda: now)


async def test_reminds_bookings_starting_within_lead_time(store, notifier, clock):
    soon = store.add("A", date(2025, 6, 1), "17:00", "18:30", ReservationStatus.APPROVED)
    later = store.add("A", date(2025, 6, 1), "20:00", "21:30", ReservationStatus.APPROVED)
    store.add("A", date(2025, 6, 1), "17:00", "18:30", ReservationStatus.PENDING)

    run = await _service(store, notifier, clock, datetime(2025, 6, 1, 15, 30)).run()

    assert run.sent == 1
    assert run.failed == 0
    assert store.reservations[soon.id].reminder_sent
    assert not store.reservations[later.id].reminder_sent
    assert notifier.sent[0][:2] == (Audience.CUSTOMER, BookingEvent.REMINDER)


async def test_each_booking_is_reminded_once(store, notifier, clock):
    store.add("A", date(2025, 6, 1), "17:00", "18:30", ReservationStatus.APPROVED)
    service = _service(store, notifier, clock, datetime(2025, 6, 1, 16, 0))

    await service.run()
    second = await service.run()

    assert second.sent == 0
    assert len(notifier.sent) == 1


async def test_after_midnight_slot_belongs_to_previous_booking_date(store, notifier, clock):
    night = store.add("A", date(2025, 6, 1), "00:30", "02:00", ReservationStatus.APPROVED)
    service = _service(store, notifier, clock, datetime(2025, 6, 1, 23, 0))

    assert service.starts_at(night) == datetime(2025, 6, 2, 0, 30)
    assert (await service.run()).sent == 1

    # Seen from the next calendar day the booking is still picked up
    store.reservations[night.id] = night.model_copy(update={"reminder_sent": False})
    notifier.sent.clear()
    run = await _service(store, notifier, clock, datetime(2025, 6, 2, 0, 0)).run()
    assert run.sent == 1


async def test_started_bookings_are_skipped(store, notifier, clock):
    store.add("A", date(2025, 6, 1), "15:30", "17:00", ReservationStatus.APPROVED)

    run = await _service(store, notifier, clock, datetime(2025, 6, 1, 16, 0)).run()

    assert run.sent == 0
    assert notifier.sent == []
