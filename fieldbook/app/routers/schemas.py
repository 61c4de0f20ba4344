from datetime import date

from pydantic import BaseModel, Field, field_validator

from fieldbook.app.services.models import ReservationRequest, Slot, normalize_time


class AvailabilityCheckIn(BaseModel):
    field_name: str = Field(min_length=1, max_length=100)
    booking_date: date
    # "HH:MM"; seconds are accepted and dropped
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def truncate_seconds(cls, value):
        return normalize_time(value)


class AvailabilityCheckOut(BaseModel):
    hold_id: str
    field_name: str
    booking_date: date
    start_time: str
    end_time: str
    expires_in_seconds: int


class CreateReservationIn(ReservationRequest):
    hold_id: str | None = Field(default=None, max_length=64)


class ReservationStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int


class ExceptionSetIn(BaseModel):
    slots: list[Slot] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=1024)
    split: bool = True


class RangeExceptionIn(ExceptionSetIn):
    field_name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
