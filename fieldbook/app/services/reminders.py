from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import BaseModel

from fieldbook.app.core.errors import RecordStoreUnavailable
from fieldbook.app.scheduling.clock import ServiceClock
from fieldbook.app.services.models import Audience, BookingEvent, Reservation, ReservationStatus
from fieldbook.app.services.notifier import Notifier
from fieldbook.app.services.store import RecordStore

logger = logging.getLogger(__name__)


class ReminderRun(BaseModel):
    checked: int
    sent: int
    failed: int


class ReminderService:
    """Reminds customers of approved bookings that start within the lead time.

    Meant to be triggered periodically (e.g. every 15 minutes by cron).
    """

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        clock: ServiceClock,
        lead_minutes: int = 120,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._lead = timedelta(minutes=lead_minutes)
        self._now = now

    def starts_at(self, reservation: Reservation) -> datetime:
        """Wall-clock start, moved to the next calendar day for early-morning slots."""
        position = self._clock.position(reservation.start_time)
        midnight = datetime.combine(reservation.booking_date, datetime.min.time())
        return midnight + timedelta(days=position.day_offset, minutes=position.minute_of_day)

    async def run(self) -> ReminderRun:
        now = self._now()
        candidates: list[Reservation] = []
        # Yesterday's service day can still have slots after midnight
        for day in (now.date() - timedelta(days=1), now.date()):
            candidates.extend(
                await self._store.list_reservations(booking_date=day, statuses=[ReservationStatus.APPROVED])
            )

        due = [
            r for r in candidates
            if not r.reminder_sent and self.starts_at(r) - self._lead <= now < self.starts_at(r)
        ]

        sent = failed = 0
        for reservation in due:
            try:
                await self._store.mark_reminder_sent(reservation.id)
            except RecordStoreUnavailable:
                failed += 1
                continue
            self._notifier.notify(Audience.CUSTOMER, BookingEvent.REMINDER, reservation.model_dump(mode="json"))
            sent += 1

        if due:
            logger.info("Reminders: %d sent, %d failed", sent, failed)
        return ReminderRun(checked=len(candidates), sent=sent, failed=failed)
