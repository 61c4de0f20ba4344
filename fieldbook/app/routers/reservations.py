from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fieldbook.app.core import redis_client as redis_module
from fieldbook.app.core.errors import (
    RecordStoreUnavailable,
    ReservationNotFound,
    SlotConflict,
    ValidationError,
)
from fieldbook.app.db.session import get_store
from fieldbook.app.routers.deps import get_lifecycle
from fieldbook.app.routers.schemas import CreateReservationIn, ReservationStats
from fieldbook.app.services.lifecycle import BookingLifecycle
from fieldbook.app.services.models import Reservation, ReservationRequest, ReservationStatus
from fieldbook.app.services.store import RecordStore

router = APIRouter()


@router.post("/reservations", response_model=Reservation, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: CreateReservationIn,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> Reservation:
    if redis_module.redis_client is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Redis unavailable")

    hold_key = redis_module.slot_hold_key(
        payload.field_name, payload.booking_date, payload.start_time, payload.end_time
    )
    hold_id = await redis_module.acquire_hold(hold_key, payload.hold_id)
    if hold_id is None:
        raise HTTPException(status.HTTP_409_CONFLICT, detail="Slot temporarily held by another request")

    request = ReservationRequest(**payload.model_dump(exclude={"hold_id"}))
    try:
        reservation = await lifecycle.create(request)
    except ValidationError as exc:
        await redis_module.release_hold(hold_key)
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except SlotConflict as exc:
        await redis_module.release_hold(hold_key)
        raise HTTPException(
            status.HTTP_409_CONFLICT, detail="Slot already booked, please choose another time"
        ) from exc
    except RecordStoreUnavailable as exc:
        await redis_module.release_hold(hold_key)
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Please try again") from exc

    # Committed; the overlap constraint guards the slot from here on
    await redis_module.release_hold(hold_key)
    return reservation

@router.get("/reservations", response_model=list[Reservation])
async def list_reservations(
    field_name: str | None = None,
    booking_date: date | None = Query(default=None, alias="date"),
    status_filter: ReservationStatus | None = Query(default=None, alias="status"),
    store: RecordStore = Depends(get_store),
) -> list[Reservation]:
    try:
        return await store.list_reservations(
            field_name=field_name,
            booking_date=booking_date,
            statuses=[status_filter] if status_filter else None,
        )
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Please try again") from exc


@router.get("/reservations/stats", response_model=ReservationStats)
async def reservation_stats(
    field_name: str | None = None,
    store: RecordStore = Depends(get_store),
) -> ReservationStats:
    try:
        reservations = await store.list_reservations(field_name=field_name)
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Please try again") from exc

    counts = {s: 0 for s in ReservationStatus}
    for reservation in reservations:
        counts[reservation.status] += 1
    return ReservationStats(
        total=len(reservations),
        pending=counts[ReservationStatus.PENDING],
        approved=counts[ReservationStatus.APPROVED],
        rejected=counts[ReservationStatus.REJECTED],
    )


async def _transition(lifecycle: BookingLifecycle, reservation_id: UUID, target: ReservationStatus) -> Reservation:
    try:
        return await lifecycle.transition(str(reservation_id), target)
    except ReservationNotFound as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Reservation not found") from exc
    except SlotConflict as exc:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail={"message": "Slot already booked", "conflicting_ids": exc.conflicting_ids},
        ) from exc
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Record store unavailable") from exc


@router.post("/reservations/{reservation_id}/approve", response_model=Reservation)
async def approve_reservation(
    reservation_id: UUID,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> Reservation:
    return await _transition(lifecycle, reservation_id, ReservationStatus.APPROVED)


@router.post("/reservations/{reservation_id}/reject", response_model=Reservation)
async def reject_reservation(
    reservation_id: UUID,
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
) -> Reservation:
    return await _transition(lifecycle, reservation_id, ReservationStatus.REJECTED)
