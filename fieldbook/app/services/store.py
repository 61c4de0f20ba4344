"""
Record store boundary.

``RecordStore`` is the interface the scheduling core consumes; services
receive an instance through their constructor. ``SqlRecordStore`` backs it
with PostgreSQL through an AsyncSession and raw SQL.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import date

from asyncpg import exceptions as asyncpg_exc
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldbook.app.core.errors import RecordStoreUnavailable, ReservationNotFound, SlotConflict
from fieldbook.app.scheduling.clock import ServiceClock, to_time
from fieldbook.app.scheduling.overlap import conflicts, service_range
from fieldbook.app.services.models import (
    ExceptionRecord,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    Slot,
)

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "bookings_no_overlap"
EXCLUSION_VIOLATION = "23P01"

RESERVATION_COLUMNS = (
    "id, field_name, customer_name, phone, booking_date, start_time, end_time, "
    "status, created_at, reminder_sent"
)
EXCEPTION_COLUMNS = "field_name, exception_date, custom_slots, notes, created_at"


class RecordStore(ABC):
    """Reservation and exception records, as seen by the scheduling core."""

    @abstractmethod
    async def list_reservations(
        self,
        field_name: str | None = None,
        booking_date: date | None = None,
        statuses: Iterable[ReservationStatus] | None = None,
    ) -> list[Reservation]: ...

    @abstractmethod
    async def get_reservation(self, reservation_id: str) -> Reservation | None: ...

    @abstractmethod
    async def create_reservation(self, request: ReservationRequest) -> Reservation:
        """Insert a pending reservation iff no active reservation overlaps it.

        Raises SlotConflict instead of writing when one does.
        """

    @abstractmethod
    async def update_reservation_status(self, reservation_id: str, status: ReservationStatus) -> Reservation: ...

    @abstractmethod
    async def mark_reminder_sent(self, reservation_id: str) -> None: ...

    @abstractmethod
    async def get_exception(self, field_name: str, exception_date: date) -> ExceptionRecord | None: ...

    @abstractmethod
    async def list_exceptions(
        self,
        field_name: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[ExceptionRecord]: ...

    @abstractmethod
    async def upsert_exception(
        self,
        field_name: str,
        exception_date: date,
        slots: Sequence[Slot],
        notes: str | None = None,
    ) -> ExceptionRecord: ...

    @abstractmethod
    async def delete_exception(self, field_name: str, exception_date: date) -> bool: ...


def _is_overlap_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", exc)
    return (
        getattr(orig, "sqlstate", None) == EXCLUSION_VIOLATION
        or isinstance(getattr(orig, "__cause__", None), asyncpg_exc.ExclusionViolationError)
        or OVERLAP_CONSTRAINT in str(orig)
    )


def _exception_from_row(row) -> ExceptionRecord:
    slots = row["custom_slots"]
    if isinstance(slots, str):
        slots = json.loads(slots)
    return ExceptionRecord(
        field_name=row["field_name"],
        exception_date=row["exception_date"],
        custom_slots=[Slot(**slot) for slot in slots],
        notes=row["notes"],
        created_at=row["created_at"],
    )


def _reservation_from_row(row) -> Reservation:
    return Reservation(**{**row, "id": str(row["id"])})


class SqlRecordStore(RecordStore):
    def __init__(self, session: AsyncSession, clock: ServiceClock):
        self._session = session
        self._clock = clock

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as exc:
            await self._session.rollback()
            if _is_overlap_violation(exc):
                raise SlotConflict("Slot already booked") from exc
            logger.exception("Integrity error during %s", action)
            raise RecordStoreUnavailable(f"{action} failed") from exc
        except (SQLAlchemyError, OSError) as exc:
            await self._session.rollback()
            logger.exception("Record store error during %s", action)
            raise RecordStoreUnavailable(f"{action} failed") from exc

    async def list_reservations(self, field_name=None, booking_date=None, statuses=None):
        clauses = []
        params: dict = {}
        if field_name is not None:
            clauses.append("field_name = :field_name")
            params["field_name"] = field_name
        if booking_date is not None:
            clauses.append("booking_date = :booking_date")
            params["booking_date"] = booking_date
        if statuses is not None:
            clauses.append("status = ANY(:statuses)")
            params["statuses"] = [ReservationStatus(s).value for s in statuses]

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        async with self._guard("list reservations"):
            result = await self._session.execute(
                text(f"SELECT {RESERVATION_COLUMNS} FROM bookings {where} ORDER BY created_at DESC"),
                params,
            )
            rows = result.mappings().all()
        return [_reservation_from_row(row) for row in rows]

    async def get_reservation(self, reservation_id):
        async with self._guard("get reservation"):
            result = await self._session.execute(
                text(f"SELECT {RESERVATION_COLUMNS} FROM bookings WHERE id = CAST(:id AS uuid)"),
                {"id": reservation_id},
            )
            row = result.mappings().one_or_none()
        return _reservation_from_row(row) if row is not None else None

    async def create_reservation(self, request):
        requested = service_range(self._clock, request.start_time, request.end_time)
        async with self._guard("create reservation"):
            # Serialises writers for one field/date until commit
            await self._session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"{request.field_name}:{request.booking_date.isoformat()}"},
            )
            existing = await self._session.execute(
                text(
                    """
                    SELECT id, start_time, end_time
                    FROM bookings
                    WHERE field_name = :field_name
                      AND booking_date = :booking_date
                      AND status <> 'rejected'
                    """
                ),
                {"field_name": request.field_name, "booking_date": request.booking_date},
            )
            clashing = [
                str(row["id"])
                for row in existing.mappings()
                if conflicts(requested, service_range(self._clock, row["start_time"], row["end_time"]))
            ]
            if clashing:
                await self._session.rollback()
                raise SlotConflict("Slot already booked", conflicting_ids=clashing)

            result = await self._session.execute(
                text(
                    f"""
                    INSERT INTO bookings (
                      field_name, customer_name, phone, booking_date, start_time, end_time, status
                    ) VALUES (
                      :field_name, :customer_name, :phone, :booking_date, :start_time, :end_time, 'pending'
                    )
                    RETURNING {RESERVATION_COLUMNS}
                    """
                ),
                {
                    "field_name": request.field_name,
                    "customer_name": request.customer_name,
                    "phone": request.phone,
                    "booking_date": request.booking_date,
                    "start_time": to_time(request.start_time),
                    "end_time": to_time(request.end_time),
                },
            )
            row = result.mappings().one()
            await self._session.commit()
        return _reservation_from_row(row)

    async def update_reservation_status(self, reservation_id, status):
        async with self._guard("update reservation status"):
            result = await self._session.execute(
                text(
                    f"""
                    UPDATE bookings SET status = :status
                    WHERE id = CAST(:id AS uuid)
                    RETURNING {RESERVATION_COLUMNS}
                    """
                ),
                {"id": reservation_id, "status": ReservationStatus(status).value},
            )
            row = result.mappings().one_or_none()
            await self._session.commit()
        if row is None:
            raise ReservationNotFound(reservation_id)
        return _reservation_from_row(row)

    async def mark_reminder_sent(self, reservation_id):
        async with self._guard("mark reminder sent"):
            await self._session.execute(
                text("UPDATE bookings SET reminder_sent = TRUE WHERE id = CAST(:id AS uuid)"),
                {"id": reservation_id},
            )
            await self._session.commit()

    async def get_exception(self, field_name, exception_date):
        async with self._guard("get exception"):
            result = await self._session.execute(
                text(
                    f"""
                    SELECT {EXCEPTION_COLUMNS}
                    FROM daily_exceptions
                    WHERE field_name = :field_name AND exception_date = :exception_date
                    """
                ),
                {"field_name": field_name, "exception_date": exception_date},
            )
            row = result.mappings().one_or_none()
        return _exception_from_row(row) if row is not None else None

    async def list_exceptions(self, field_name=None, start_date=None, end_date=None):
        clauses = []
        params: dict = {}
        if field_name is not None:
            clauses.append("field_name = :field_name")
            params["field_name"] = field_name
        if start_date is not None:
            clauses.append("exception_date >= :start_date")
            params["start_date"] = start_date
        if end_date is not None:
            clauses.append("exception_date <= :end_date")
            params["end_date"] = end_date

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        async with self._guard("list exceptions"):
            result = await self._session.execute(
                text(f"SELECT {EXCEPTION_COLUMNS} FROM daily_exceptions {where} ORDER BY exception_date ASC"),
                params,
            )
            rows = result.mappings().all()
        return [_exception_from_row(row) for row in rows]

    async def upsert_exception(self, field_name, exception_date, slots, notes=None):
        payload = json.dumps([slot.model_dump() for slot in slots])
        async with self._guard("upsert exception"):
            result = await self._session.execute(
                text(
                    f"""
                    INSERT INTO daily_exceptions (field_name, exception_date, custom_slots, notes)
                    VALUES (:field_name, :exception_date, CAST(:custom_slots AS jsonb), :notes)
                    ON CONFLICT (field_name, exception_date)
                    DO UPDATE SET custom_slots = EXCLUDED.custom_slots, notes = EXCLUDED.notes
                    RETURNING {EXCEPTION_COLUMNS}
                    """
                ),
                {
                    "field_name": field_name,
                    "exception_date": exception_date,
                    "custom_slots": payload,
                    "notes": notes,
                },
            )
            row = result.mappings().one()
            await self._session.commit()
        return _exception_from_row(row)

    async def delete_exception(self, field_name, exception_date):
        async with self._guard("delete exception"):
            result = await self._session.execute(
                text(
                    """
                    DELETE FROM daily_exceptions
                    WHERE field_name = :field_name AND exception_date = :exception_date
                    """
                ),
                {"field_name": field_name, "exception_date": exception_date},
            )
            await self._session.commit()
        return result.rowcount > 0
