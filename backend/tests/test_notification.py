"""Tests for change notifications."""

import json
from datetime import datetime, timezone

import httpx

from netsync.config import settings
from netsync.schemas.sync import StatusChange
from netsync.services.notification import format_change_message, send_change_notification

NODE_DOWN = StatusChange(name="r1", ip_mgmt="10.0.0.1", previous_status="UP", current_status="DOWN")
IFACE_UP = StatusChange(
    name="ether1", description="uplink", node_name="r1", previous_status="DOWN", current_status="UP",
)


def test_format_change_message() -> None:
    message = format_change_message([NODE_DOWN], [IFACE_UP], now=datetime(2024, 5, 1, tzinfo=timezone.utc))

    assert "2024-05-01 00:00:00 UTC" in message
    assert "❌ *r1* (10.0.0.1) is now *DOWN*" in message
    assert "🟢 *ether1* (uplink) on _r1_ is now *UP*" in message


async def test_nothing_sent_without_changes(monkeypatch) -> None:
    monkeypatch.setattr(settings, "NOTIFY_WEBHOOK_URL", "http://chat.test/send/message")

    assert await send_change_notification([], []) is False


async def test_nothing_sent_without_webhook(monkeypatch) -> None:
    monkeypatch.setattr(settings, "NOTIFY_WEBHOOK_URL", "")

    assert await send_change_notification([NODE_DOWN], []) is False


async def test_posts_report_with_basic_auth(monkeypatch) -> None:
    monkeypatch.setattr(settings, "NOTIFY_WEBHOOK_URL", "http://chat.test/send/message")
    monkeypatch.setattr(settings, "NOTIFY_USERNAME", "bot")
    monkeypatch.setattr(settings, "NOTIFY_PASSWORD", "pw")
    monkeypatch.setattr(settings, "NOTIFY_TARGET", "noc-group")
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"code": "SUCCESS"})

    sent = await send_change_notification([NODE_DOWN], [IFACE_UP], transport=httpx.MockTransport(handler))

    assert sent is True
    body = json.loads(requests[0].content)
    assert body["phone"] == "noc-group"
    assert "r1" in body["message"]
    assert requests[0].headers["Authorization"].startswith("Basic ")


async def test_delivery_failure_is_logged_not_raised(monkeypatch) -> None:
    monkeypatch.setattr(settings, "NOTIFY_WEBHOOK_URL", "http://chat.test/send/message")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    sent = await send_change_notification([NODE_DOWN], [], transport=httpx.MockTransport(handler))

    assert sent is False
