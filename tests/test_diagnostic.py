"""Tests for the test-mode subscriber."""

from __future__ import annotations

import asyncio
import logging
import os
import signal

import pytest
from helpers import FakeBus

from natsbridge_bus.diagnostic import DEFAULT_ACK, DiagnosticSubscriber
from natsbridge_bus.errors import BusNotConnected


class TestHandle:
    @pytest.mark.asyncio
    async def test_subscribes_to_topic(self):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag")
        await sub.start()
        assert "diag" in bus.subscriptions

    @pytest.mark.asyncio
    async def test_message_is_logged(self, caplog):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag")
        await sub.start()
        with caplog.at_level(logging.INFO, logger="natsbridge_bus.diagnostic"):
            await bus.deliver("diag", b'{"hello":"world"}')
        assert sub.received == 1
        assert '{"hello":"world"}' in caplog.text

    @pytest.mark.asyncio
    async def test_plain_publish_is_not_acknowledged(self):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag")
        await sub.start()
        await bus.deliver("diag", b"{}")
        assert bus.published == []
        assert sub.acknowledged == 0

    @pytest.mark.asyncio
    async def test_request_is_acknowledged_on_reply_address(self):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag")
        await sub.start()
        await bus.deliver("diag", b"{}", reply="_INBOX.abc")
        assert bus.published == [("_INBOX.abc", DEFAULT_ACK)]
        assert sub.acknowledged == 1

    @pytest.mark.asyncio
    async def test_custom_ack_body(self):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag", ack=b'"pong"')
        await sub.start()
        await bus.deliver("diag", b"{}", reply="_INBOX.abc")
        assert bus.published == [("_INBOX.abc", b'"pong"')]

    @pytest.mark.asyncio
    async def test_ack_failure_is_swallowed(self, caplog):
        bus = FakeBus(publish_error=BusNotConnected("down"))
        sub = DiagnosticSubscriber(bus, "diag")
        await sub.start()
        with caplog.at_level(logging.ERROR, logger="natsbridge_bus.diagnostic"):
            await bus.deliver("diag", b"{}", reply="_INBOX.1")
            await bus.deliver("diag", b"{}", reply="_INBOX.2")
        assert sub.received == 2
        assert sub.acknowledged == 0
        assert "Failed to acknowledge" in caplog.text

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag")
        await sub.start()
        await sub.stop()
        assert bus.subscriptions == {}
        await sub.stop()


class TestRunUntilInterrupted:
    @pytest.mark.asyncio
    async def test_returns_the_signal(self):
        bus = FakeBus()
        sub = DiagnosticSubscriber(bus, "diag")

        async def interrupt() -> None:
            while "diag" not in bus.subscriptions:
                await asyncio.sleep(0.01)
            os.kill(os.getpid(), signal.SIGUSR1)

        task = asyncio.create_task(interrupt())
        result = await asyncio.wait_for(
            sub.run_until_interrupted(signals=(signal.SIGUSR1,)), timeout=5
        )
        await task
        assert result == signal.SIGUSR1
        assert bus.subscriptions == {}
