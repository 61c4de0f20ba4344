from __future__ import annotations

import logging
from datetime import date

from fieldbook.app.core.errors import RecordStoreUnavailable
from fieldbook.app.scheduling.clock import ServiceClock
from fieldbook.app.scheduling.overlap import conflicts, service_range
from fieldbook.app.scheduling.overrides import ExceptionResolver
from fieldbook.app.services.models import (
    ACTIVE_STATUSES,
    Reservation,
    ReservationStatus,
    SlotAvailability,
)
from fieldbook.app.services.store import RecordStore

logger = logging.getLogger(__name__)


def validate_range(clock: ServiceClock, start: str, end: str) -> None:
    """Raise ValidationError unless start..end is a forward range inside one service day."""
    clock.bounded_span(start, end)


class AvailabilityService:
    """Answers availability questions from a fresh snapshot of the store.

    Nothing is locked between the read and any later write; the store's
    conditional create is what finally guarantees no double booking.
    """

    def __init__(self, store: RecordStore, resolver: ExceptionResolver, clock: ServiceClock):
        self._store = store
        self._resolver = resolver
        self._clock = clock

    @property
    def clock(self) -> ServiceClock:
        return self._clock

    async def find_conflicts(
        self,
        field_name: str,
        day: date,
        start: str,
        end: str,
        exclude_id: str | None = None,
    ) -> list[Reservation]:
        """Active reservations overlapping ``[start, end)``. Store errors propagate."""
        validate_range(self._clock, start, end)
        requested = service_range(self._clock, start, end)
        existing = await self._store.list_reservations(
            field_name=field_name,
            booking_date=day,
            statuses=ACTIVE_STATUSES,
        )
        return [
            r
            for r in existing
            if r.id != exclude_id
            and r.status != ReservationStatus.REJECTED
            and conflicts(requested, service_range(self._clock, r.start_time, r.end_time))
        ]

    async def is_available(
        self,
        field_name: str,
        day: date,
        start: str,
        end: str,
        exclude_id: str | None = None,
    ) -> bool:
        try:
            clashing = await self.find_conflicts(field_name, day, start, end, exclude_id)
        except RecordStoreUnavailable:
            # Unknown is treated as taken
            logger.warning("Availability for %s on %s unknown, denying", field_name, day)
            return False
        return not clashing

    async def list_slots_with_availability(self, field_name: str, day: date) -> list[SlotAvailability]:
        slots = await self._resolver.resolve(field_name, day)
        approved = await self._store.list_reservations(
            field_name=field_name,
            booking_date=day,
            statuses=[ReservationStatus.APPROVED],
        )
        taken = {(r.start_time, r.end_time) for r in approved}
        approved_ranges = [service_range(self._clock, r.start_time, r.end_time) for r in approved]

        listing = []
        for slot in slots:
            cell = service_range(self._clock, slot.start, slot.end)
            listing.append(
                SlotAvailability(
                    start=slot.start,
                    end=slot.end,
                    is_booked=(slot.start, slot.end) in taken,
                    has_conflict=any(conflicts(cell, other) for other in approved_ranges),
                )
            )
        return listing
