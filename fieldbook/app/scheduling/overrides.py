"""
Day-level overrides of the default slot grid.

An exception record replaces the grid of one field on one date with a
custom slot list. Admin input arrives as coarse ranges which are split into
sub-slots before storing; resolving a day returns the stored list verbatim.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta

from fieldbook.app.core.errors import RecordStoreUnavailable, ValidationError
from fieldbook.app.scheduling import grid
from fieldbook.app.scheduling.clock import ServiceClock
from fieldbook.app.services.models import ExceptionRecord, RangeExceptionResult, Slot
from fieldbook.app.services.store import RecordStore

logger = logging.getLogger(__name__)


class ExceptionResolver:
    def __init__(
        self,
        store: RecordStore,
        clock: ServiceClock,
        default_grid: list[Slot],
        split_minutes: int = grid.DEFAULT_SLOT_MINUTES,
        max_range_days: int = 366,
    ):
        self._store = store
        self._clock = clock
        self._default_grid = list(default_grid)
        self._split_minutes = split_minutes
        self._max_range_days = max_range_days

    @property
    def default_grid(self) -> list[Slot]:
        return list(self._default_grid)

    async def resolve(self, field_name: str, day: date) -> list[Slot]:
        """Effective slots for a field on a date."""
        record = await self._store.get_exception(field_name, day)
        if record is None:
            return self.default_grid
        return list(record.custom_slots)

    def build_slots(self, ranges: Iterable[Slot], split: bool = True) -> list[Slot]:
        """Expand admin ranges into the slot list stored on an exception."""
        slots: list[Slot] = []
        for coarse in ranges:
            if split:
                slots.extend(grid.split_range(coarse.start, coarse.end, self._split_minutes, clock=self._clock))
            else:
                slots.append(coarse)
        if not slots:
            raise ValidationError("An exception needs at least one slot")

        slots.sort(key=lambda s: self._clock.sort_key(s.start))
        return list(dict.fromkeys(slots))

    async def set_exception(
        self,
        field_name: str,
        day: date,
        ranges: Iterable[Slot],
        notes: str | None = None,
        split: bool = True,
    ) -> ExceptionRecord:
        slots = self.build_slots(ranges, split=split)
        record = await self._store.upsert_exception(field_name, day, slots, notes)
        logger.info("Exception set for %s on %s with %d slots", field_name, day, len(slots))
        return record

    async def set_range_exception(
        self,
        field_name: str,
        start_date: date,
        end_date: date,
        ranges: Iterable[Slot],
        notes: str | None = None,
        split: bool = True,
    ) -> RangeExceptionResult:
        """Write the same custom slots on every day of ``[start_date, end_date]``.

        Days are written one by one; a failed day is reported and does not
        undo the days already written.
        """
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        days = (end_date - start_date).days + 1
        if days > self._max_range_days:
            raise ValidationError(f"Date range covers {days} days, limit is {self._max_range_days}")

        slots = self.build_slots(ranges, split=split)
        result = RangeExceptionResult(requested=days, written=0)
        for offset in range(days):
            day = start_date + timedelta(days=offset)
            try:
                await self._store.upsert_exception(field_name, day, slots, notes)
            except RecordStoreUnavailable:
                logger.warning("Exception for %s on %s was not written", field_name, day)
                result.failed_dates.append(day)
                continue
            result.written += 1

        logger.info(
            "Range exception for %s %s..%s: %d/%d days written",
            field_name, start_date, end_date, result.written, result.requested,
        )
        return result

    async def remove_exception(self, field_name: str, day: date) -> bool:
        removed = await self._store.delete_exception(field_name, day)
        if removed:
            logger.info("Exception removed for %s on %s", field_name, day)
        return removed

    async def list_exceptions(
        self,
        field_name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[ExceptionRecord]:
        return await self._store.list_exceptions(field_name, start_date, end_date)
