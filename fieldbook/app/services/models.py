from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fieldbook.app.scheduling.clock import format_time, parse_time


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.APPROVED)


class Audience(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class BookingEvent(str, Enum):
    CREATED = "booking_created"
    APPROVED = "booking_approved"
    REJECTED = "booking_rejected"
    REMINDER = "booking_reminder"


def normalize_time(value):
    # Stored rows may carry seconds ("16:00:00"); compare on HH:MM only.
    return format_time(parse_time(value))


class Slot(BaseModel):
    """One bookable interval. ``end`` may be earlier than ``start`` when the slot crosses midnight."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start", "end", mode="before")
    @classmethod
    def truncate_seconds(cls, value):
        return normalize_time(value)

    @model_validator(mode="after")
    def check_not_empty(self) -> "Slot":
        if self.start == self.end:
            raise ValueError("slot start and end must differ")
        return self


class ReservationRequest(BaseModel):
    field_name: str = Field(min_length=1, max_length=100)
    customer_name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=1, max_length=32)
    booking_date: date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def truncate_seconds(cls, value):
        return normalize_time(value)


class Reservation(BaseModel):
    id: str
    field_name: str
    customer_name: str
    phone: str
    booking_date: date
    start_time: str
    end_time: str
    status: ReservationStatus
    created_at: datetime
    reminder_sent: bool = False

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def truncate_seconds(cls, value):
        return normalize_time(value)

    @property
    def slot(self) -> Slot:
        return Slot(start=self.start_time, end=self.end_time)


class ExceptionRecord(BaseModel):
    field_name: str
    exception_date: date
    custom_slots: list[Slot]
    notes: str | None = None
    created_at: datetime | None = None


class SlotAvailability(BaseModel):
    start: str
    end: str
    is_booked: bool
    # Set when an approved reservation overlaps without matching the cell exactly
    has_conflict: bool


class RangeExceptionResult(BaseModel):
    requested: int
    written: int
    failed_dates: list[date] = Field(default_factory=list)
