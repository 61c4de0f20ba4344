"""
Notification dispatch.

The core only decides which audience hears about which event; delivery is
someone else's job. ``notify`` never blocks the caller and never raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from fieldbook.app.services.models import Audience, BookingEvent

logger = logging.getLogger(__name__)


class Notifier:
    """Fire-and-forget dispatcher. The base class only logs."""

    def notify(self, audience: Audience, event: BookingEvent, payload: dict[str, Any]) -> None:
        logger.info("Notify %s: %s (%s)", audience.value, event.value, payload.get("id"))


class WebhookNotifier(Notifier):
    """POSTs each notification as JSON to an HTTP endpoint on a background task."""

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None):
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._pending: set[asyncio.Task] = set()

    def notify(self, audience, event, payload):
        body = {"audience": audience.value, "event": event.value, "data": payload}
        try:
            task = asyncio.get_running_loop().create_task(self._send(body))
        except RuntimeError:
            logger.error("No running event loop, dropping %s for %s", event.value, audience.value)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, body: dict[str, Any]) -> None:
        try:
            response = await self._client.post(self._url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Notification %s to %s failed: %s", body["event"], body["audience"], exc)

    async def drain(self) -> None:
        """Wait for in-flight deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._client.aclose()
