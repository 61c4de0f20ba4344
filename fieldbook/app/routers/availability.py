from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fieldbook.app.core import redis_client as redis_module
from fieldbook.app.core.config import settings
from fieldbook.app.core.errors import RecordStoreUnavailable, ValidationError
from fieldbook.app.routers.deps import get_availability, service_clock
from fieldbook.app.routers.schemas import AvailabilityCheckIn, AvailabilityCheckOut
from fieldbook.app.services.availability import AvailabilityService
from fieldbook.app.services.models import Slot, SlotAvailability

MAX_ALT_SEARCH = 16
ALT_LOOKAHEAD = 4

router = APIRouter()


async def _build_alternates(
    availability: AvailabilityService,
    field_name: str,
    booking_date: date,
    after: str,
) -> list[Slot]:
    """Free grid cells of the same day starting at or after ``after``."""
    clock = service_clock()
    try:
        cells = await availability.list_slots_with_availability(field_name, booking_date)
    except RecordStoreUnavailable:
        return []

    alts: list[Slot] = []
    checked = 0
    for cell in cells:
        if len(alts) >= ALT_LOOKAHEAD or checked >= MAX_ALT_SEARCH:
            break
        if cell.is_booked or clock.sort_key(cell.start) < clock.sort_key(after):
            continue
        checked += 1
        if await availability.is_available(field_name, booking_date, cell.start, cell.end):
            alts.append(Slot(start=cell.start, end=cell.end))
    return alts


@router.get("/fields/{field_name}/slots", response_model=list[SlotAvailability])
async def list_slots(
    field_name: str,
    booking_date: date = Query(alias="date"),
    availability: AvailabilityService = Depends(get_availability),
) -> list[SlotAvailability]:
    try:
        return await availability.list_slots_with_availability(field_name, booking_date)
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Please try again") from exc


@router.post("/availability/check", response_model=AvailabilityCheckOut)
async def check_availability(
    payload: AvailabilityCheckIn,
    availability: AvailabilityService = Depends(get_availability),
) -> AvailabilityCheckOut:
    if redis_module.redis_client is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Redis unavailable")

    try:
        available = await availability.is_available(
            payload.field_name, payload.booking_date, payload.start_time, payload.end_time
        )
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    if not available:
        alternates = await _build_alternates(
            availability, payload.field_name, payload.booking_date, payload.start_time
        )
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail={
                "message": "Slot unavailable",
                "alternates": [alt.model_dump() for alt in alternates],
            },
        )

    hold_key = redis_module.slot_hold_key(
        payload.field_name, payload.booking_date, payload.start_time, payload.end_time
    )
    hold_id = await redis_module.acquire_hold(hold_key)
    if hold_id is None:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail={"message": "Slot temporarily held by another request", "alternates": []},
        )

    return AvailabilityCheckOut(
        hold_id=hold_id,
        field_name=payload.field_name,
        booking_date=payload.booking_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        expires_in_seconds=settings.HOLD_TTL_SECONDS,
    )
