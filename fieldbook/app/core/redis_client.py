from datetime import date
from uuid import uuid4

import redis.asyncio as redis

from fieldbook.app.core.config import settings


redis_client: redis.Redis | None = None


async def init_redis() -> None:
    """Initialise a shared Redis connection."""
    global redis_client
    redis_client = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )


async def close_redis() -> None:
    """Close the Redis connection if it was initialised."""
    if redis_client is not None:
        await redis_client.aclose()


def slot_hold_key(field_name: str, booking_date: date, start: str, end: str) -> str:
    return f"hold:{field_name}:{booking_date.isoformat()}:{start}:{end}"


async def acquire_hold(key: str, hold_id: str | None = None, ttl_seconds: int | None = None) -> str | None:
    """Take a short-lived hold on a slot.

    Returns the hold id, or None when somebody else holds the slot. Passing
    the id of a hold the caller already owns succeeds without touching it.
    """
    if hold_id is not None and await redis_client.get(key) == hold_id:
        return hold_id

    new_id = str(uuid4())
    ttl = ttl_seconds or settings.HOLD_TTL_SECONDS
    acquired = await redis_client.set(key, new_id, nx=True, px=ttl * 1000)
    return new_id if acquired else None


async def release_hold(key: str) -> None:
    await redis_client.delete(key)
