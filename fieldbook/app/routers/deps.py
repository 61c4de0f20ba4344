from functools import lru_cache

from fastapi import Depends

from fieldbook.app.core.config import settings
from fieldbook.app.db.session import get_store
from fieldbook.app.scheduling import grid
from fieldbook.app.scheduling.clock import ServiceClock
from fieldbook.app.scheduling.overrides import ExceptionResolver
from fieldbook.app.services.availability import AvailabilityService
from fieldbook.app.services.lifecycle import BookingLifecycle
from fieldbook.app.services.models import Slot
from fieldbook.app.services.notifier import Notifier, WebhookNotifier
from fieldbook.app.services.reminders import ReminderService
from fieldbook.app.services.store import RecordStore


notifier: Notifier | None = None


async def init_notifier() -> None:
    global notifier
    if settings.NOTIFY_WEBHOOK_URL:
        notifier = WebhookNotifier(settings.NOTIFY_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
    else:
        notifier = Notifier()


async def close_notifier() -> None:
    if isinstance(notifier, WebhookNotifier):
        await notifier.aclose()


@lru_cache
def service_clock() -> ServiceClock:
    return ServiceClock(settings.SERVICE_DAY_ROLLOVER)


@lru_cache
def default_grid() -> tuple[Slot, ...]:
    # Raises InvalidWindow at first use if the window settings are broken
    return tuple(
        grid.generate(settings.SLOT_WINDOW_START, settings.SLOT_WINDOW_END, settings.SLOT_DURATION_MINUTES)
    )


def get_notifier() -> Notifier:
    return notifier if notifier is not None else Notifier()


def get_resolver(store: RecordStore = Depends(get_store)) -> ExceptionResolver:
    return ExceptionResolver(
        store,
        service_clock(),
        list(default_grid()),
        split_minutes=settings.EXCEPTION_SLOT_MINUTES,
        max_range_days=settings.EXCEPTION_RANGE_MAX_DAYS,
    )


def get_availability(
    store: RecordStore = Depends(get_store),
    resolver: ExceptionResolver = Depends(get_resolver),
) -> AvailabilityService:
    return AvailabilityService(store, resolver, service_clock())


def get_lifecycle(
    store: RecordStore = Depends(get_store),
    availability: AvailabilityService = Depends(get_availability),
    notifier: Notifier = Depends(get_notifier),
) -> BookingLifecycle:
    return BookingLifecycle(
        store,
        availability,
        notifier,
        phone_pattern=settings.PHONE_PATTERN,
        min_name_length=settings.CUSTOMER_NAME_MIN_LENGTH,
    )


def get_reminders(
    store: RecordStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
) -> ReminderService:
    return ReminderService(store, notifier, service_clock(), lead_minutes=settings.REMINDER_LEAD_MINUTES)
