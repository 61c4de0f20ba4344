"""
Reservation status machine.

pending -> approved | rejected, approved -> rejected (cancellation) and
rejected -> approved (late approval). Every move into ``approved`` re-checks
availability with the reservation itself left out of the conflict set.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import date

from fieldbook.app.core.errors import ReservationNotFound, SlotConflict, ValidationError
from fieldbook.app.services.availability import AvailabilityService, validate_range
from fieldbook.app.services.models import (
    Audience,
    BookingEvent,
    Reservation,
    ReservationRequest,
    ReservationStatus,
)
from fieldbook.app.services.notifier import Notifier
from fieldbook.app.services.store import RecordStore

logger = logging.getLogger(__name__)


def clean_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone)


class BookingLifecycle:
    def __init__(
        self,
        store: RecordStore,
        availability: AvailabilityService,
        notifier: Notifier,
        phone_pattern: str | None = None,
        min_name_length: int = 1,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._availability = availability
        self._notifier = notifier
        self._phone_re = re.compile(phone_pattern) if phone_pattern else None
        self._min_name_length = max(min_name_length, 1)
        self._today = today

    def _validate(self, request: ReservationRequest) -> ReservationRequest:
        name = request.customer_name.strip()
        if len(name) < self._min_name_length:
            raise ValidationError(f"customer_name needs at least {self._min_name_length} characters")
        phone = clean_phone(request.phone)
        if self._phone_re is not None and not self._phone_re.match(phone):
            raise ValidationError("phone number is not valid")
        if request.booking_date < self._today():
            raise ValidationError("booking_date is in the past")
        validate_range(self._availability.clock, request.start_time, request.end_time)
        return request.model_copy(update={"customer_name": name, "phone": phone})

    async def create(self, request: ReservationRequest) -> Reservation:
        request = self._validate(request)
        clashing = await self._availability.find_conflicts(
            request.field_name, request.booking_date, request.start_time, request.end_time
        )
        if clashing:
            raise SlotConflict(conflicting_ids=[r.id for r in clashing])

        reservation = await self._store.create_reservation(request)
        logger.info(
            "Reservation %s created for %s on %s %s-%s",
            reservation.id, reservation.field_name, reservation.booking_date,
            reservation.start_time, reservation.end_time,
        )
        self._notifier.notify(Audience.ADMIN, BookingEvent.CREATED, reservation.model_dump(mode="json"))
        return reservation

    async def _load(self, reservation_id: str) -> Reservation:
        reservation = await self._store.get_reservation(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    async def approve(self, reservation_id: str) -> Reservation:
        reservation = await self._load(reservation_id)
        if reservation.status == ReservationStatus.APPROVED:
            return reservation

        clashing = await self._availability.find_conflicts(
            reservation.field_name,
            reservation.booking_date,
            reservation.start_time,
            reservation.end_time,
            exclude_id=reservation.id,
        )
        if clashing:
            logger.info("Approval of %s blocked by %s", reservation.id, [r.id for r in clashing])
            raise SlotConflict(conflicting_ids=[r.id for r in clashing])

        updated = await self._store.update_reservation_status(reservation.id, ReservationStatus.APPROVED)
        logger.info("Reservation %s approved (was %s)", updated.id, reservation.status.value)
        payload = updated.model_dump(mode="json")
        self._notifier.notify(Audience.CUSTOMER, BookingEvent.APPROVED, payload)
        self._notifier.notify(Audience.STAFF, BookingEvent.APPROVED, payload)
        return updated

    async def reject(self, reservation_id: str) -> Reservation:
        reservation = await self._load(reservation_id)
        if reservation.status == ReservationStatus.REJECTED:
            return reservation

        updated = await self._store.update_reservation_status(reservation.id, ReservationStatus.REJECTED)
        logger.info("Reservation %s rejected (was %s)", updated.id, reservation.status.value)
        self._notifier.notify(Audience.CUSTOMER, BookingEvent.REJECTED, updated.model_dump(mode="json"))
        return updated

    async def transition(self, reservation_id: str, status: ReservationStatus) -> Reservation:
        status = ReservationStatus(status)
        if status == ReservationStatus.APPROVED:
            return await self.approve(reservation_id)
        if status == ReservationStatus.REJECTED:
            return await self.reject(reservation_id)
        raise ValidationError("Reservations can only move to approved or rejected")
