import json

import httpx
import pytest

from fieldbook.app.services.models import Audience, BookingEvent
from fieldbook.app.services.notifier import WebhookNotifier


pytestmark = pytest.mark.asyncio(loop_scope="module")


async def test_webhook_notifier_posts_in_background():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier("http://notify.test/hook", client=client)

    notifier.notify(Audience.ADMIN, BookingEvent.CREATED, {"id": "r-1"})
    await notifier.aclose()

    assert received == [{"audience": "admin", "event": "booking_created", "data": {"id": "r-1"}}]


async def test_webhook_failures_are_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier("http://notify.test/hook", client=client)

    notifier.notify(Audience.CUSTOMER, BookingEvent.APPROVED, {"id": "r-2"})
    await notifier.aclose()
