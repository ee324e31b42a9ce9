"""Diagnostic ("test mode") subscriber.

Subscribes to one topic, logs every message it sees, and answers any
message that carries a reply address with a fixed acknowledgment. It is
meant for checking connectivity end to end without a real consumer:
point the gateway's ``/requests/{topic}`` route at the same topic from a
second process and the request comes back 200.

This is an alternate process mode. It never runs alongside the HTTP
routes.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from natsbridge_bus.capability import BusClient, BusMessage, Subscription
from natsbridge_bus.errors import BusError

logger = logging.getLogger(__name__)

DEFAULT_ACK = b'{"status": "received"}'

# Longest payload excerpt written to the log.
_LOG_PREVIEW = 512


class DiagnosticSubscriber:
    """Logs and acknowledges messages on a single topic."""

    def __init__(self, bus: BusClient, topic: str, ack: bytes = DEFAULT_ACK) -> None:
        self._bus = bus
        self._topic = topic
        self._ack = ack
        self._subscription: Subscription | None = None
        self.received = 0
        self.acknowledged = 0

    @property
    def topic(self) -> str:
        return self._topic

    async def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = await self._bus.subscribe(self._topic, self.handle)
        logger.info("Running in test mode, subscribed to topic %s", self._topic)

    async def stop(self) -> None:
        sub, self._subscription = self._subscription, None
        if sub is None:
            return
        try:
            await sub.unsubscribe()
        except BusError as e:
            logger.warning("Unsubscribe from %s failed: %s", self._topic, e)

    async def handle(self, message: BusMessage) -> None:
        """Log *message* and acknowledge it if it expects a reply.

        A failed acknowledgment is logged and dropped; the subscription
        keeps running.
        """
        self.received += 1
        preview = message.data[:_LOG_PREVIEW].decode("utf-8", errors="replace")
        logger.info(
            "Received message on %s (%d bytes): %s",
            message.subject,
            len(message.data),
            preview,
        )
        if not message.reply:
            return
        try:
            await self._bus.publish(message.reply, self._ack)
        except BusError as e:
            logger.error("Failed to acknowledge message on %s: %s", message.subject, e)
            return
        self.acknowledged += 1

    async def run_until_interrupted(
        self,
        signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM),
    ) -> signal.Signals:
        """Serve until one of *signals* arrives, then unsubscribe.

        Returns the signal that ended the run.
        """
        loop = asyncio.get_running_loop()
        received: asyncio.Future[signal.Signals] = loop.create_future()

        def on_signal(sig: signal.Signals) -> None:
            if not received.done():
                received.set_result(sig)

        for sig in signals:
            loop.add_signal_handler(sig, on_signal, sig)
        try:
            await self.start()
            result = await received
            logger.info("Signal received: %s", result.name)
            return result
        finally:
            for sig in signals:
                loop.remove_signal_handler(sig)
            await self.stop()
