from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fieldbook.app.core.errors import RecordStoreUnavailable, ValidationError
from fieldbook.app.routers.deps import get_resolver
from fieldbook.app.routers.schemas import ExceptionSetIn, RangeExceptionIn
from fieldbook.app.scheduling.overrides import ExceptionResolver
from fieldbook.app.services.models import ExceptionRecord, RangeExceptionResult


router = APIRouter(prefix="/exceptions")


@router.get("", response_model=list[ExceptionRecord])
async def list_exceptions(
    field_name: str | None = None,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    resolver: ExceptionResolver = Depends(get_resolver),
) -> list[ExceptionRecord]:
    try:
        return await resolver.list_exceptions(field_name, start_date, end_date)
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load exceptions") from exc


@router.put("/{field_name}/{exception_date}", response_model=ExceptionRecord)
async def set_exception(
    field_name: str,
    exception_date: date,
    payload: ExceptionSetIn,
    resolver: ExceptionResolver = Depends(get_resolver),
) -> ExceptionRecord:
    """Replace the day's grid with custom slots (upsert)."""
    try:
        return await resolver.set_exception(
            field_name, exception_date, payload.slots, payload.notes, split=payload.split
        )
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to save exception") from exc


@router.post("/range", response_model=RangeExceptionResult)
async def set_range_exception(
    payload: RangeExceptionIn,
    resolver: ExceptionResolver = Depends(get_resolver),
) -> RangeExceptionResult:
    """Apply one exception to every day of a date range; reports per-day success."""
    try:
        return await resolver.set_range_exception(
            payload.field_name,
            payload.start_date,
            payload.end_date,
            payload.slots,
            payload.notes,
            split=payload.split,
        )
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


@router.delete("/{field_name}/{exception_date}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_exception(
    field_name: str,
    exception_date: date,
    resolver: ExceptionResolver = Depends(get_resolver),
) -> None:
    try:
        removed = await resolver.remove_exception(field_name, exception_date)
    except RecordStoreUnavailable as exc:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to remove exception") from exc
    if not removed:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="No exception for that field and date")
