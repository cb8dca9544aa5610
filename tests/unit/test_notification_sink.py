"""Unit tests for NotificationSink."""

from unittest.mock import AsyncMock

import pytest
from telegram.constants import ParseMode

from conftest import FakeGateway, make_snapshot
from sysmonbot.gateway.notification_sink import NotificationSink


@pytest.mark.asyncio
async def test_deliver_posts_one_html_message(fake_gateway, snapshot):
    sink = NotificationSink(fake_gateway)

    assert await sink.deliver(snapshot, -100123) is True

    assert len(fake_gateway.messages) == 1
    chat_id, text, parse_mode = fake_gateway.messages[0]
    assert chat_id == -100123
    assert parse_mode == ParseMode.HTML
    assert text.startswith("<b>System Resource Load</b>")
    assert snapshot.load_average in text


@pytest.mark.asyncio
async def test_deliver_accepts_error_valued_fields(fake_gateway):
    snap = make_snapshot(cpu_temperature="error: sensor unavailable")

    assert await NotificationSink(fake_gateway).deliver(snap, 42) is True
    assert "error: sensor unavailable" in fake_gateway.messages[0][1]


@pytest.mark.asyncio
async def test_deliver_reports_rejected_send(snapshot):
    gateway = FakeGateway(send_ok=False)

    assert await NotificationSink(gateway).deliver(snapshot, 42) is False
    assert len(gateway.messages) == 1  # no retry


@pytest.mark.asyncio
async def test_deliver_swallows_gateway_exception(snapshot):
    gateway = AsyncMock()
    gateway.send_message = AsyncMock(side_effect=ConnectionError("network down"))

    assert await NotificationSink(gateway).deliver(snapshot, 42) is False
    gateway.send_message.assert_awaited_once()
