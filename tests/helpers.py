"""Shared test fixtures: FakeBus, chunked body streams.

FakeBus is a programmable in-memory implementation of the bus
capability. It records every publish and request, and replies to
requests from a script of byte strings, exceptions, or ``NO_REPLY``.

Usage::

    bus = FakeBus(replies=[b'{"status":"ok"}'])
    app = create_app(bus)
    ...
    assert bus.published == [("orders", b'{"id":1}')]
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence

from natsbridge_bus.capability import BusMessage, MessageCallback

# Sentinel: the request never gets a reply.
NO_REPLY = object()


class FakeSubscription:
    def __init__(self, bus: FakeBus, subject: str) -> None:
        self._bus = bus
        self.subject = subject
        self.active = True

    async def unsubscribe(self) -> None:
        self.active = False
        self._bus.subscriptions.pop(self.subject, None)


class FakeBus:
    def __init__(
        self,
        replies: Sequence[bytes | Exception | object] | None = None,
        publish_error: Exception | None = None,
    ) -> None:
        self._replies: list[bytes | Exception | object] = list(replies or [])
        self.publish_error = publish_error
        self.published: list[tuple[str, bytes]] = []
        self.requests: list[tuple[str, bytes, float]] = []
        self.subscriptions: dict[str, MessageCallback] = {}
        self.closed = False

    async def publish(self, subject: str, payload: bytes) -> None:
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((subject, payload))

    async def request(self, subject: str, payload: bytes, timeout: float) -> bytes:
        self.requests.append((subject, payload, timeout))
        if not self._replies:
            raise RuntimeError(f"FakeBus exhausted: no scripted reply for {subject!r}")
        reply = self._replies.pop(0)
        if reply is NO_REPLY:
            await asyncio.sleep(3600)
        if isinstance(reply, Exception):
            raise reply
        assert isinstance(reply, bytes)
        return reply

    async def subscribe(self, subject: str, callback: MessageCallback) -> FakeSubscription:
        self.subscriptions[subject] = callback
        return FakeSubscription(self, subject)

    async def deliver(self, subject: str, data: bytes, reply: str = "") -> None:
        """Push a message to the subscriber on *subject*."""
        await self.subscriptions[subject](BusMessage(subject=subject, data=data, reply=reply))

    async def close(self) -> None:
        self.closed = True


async def chunked(*chunks: bytes) -> AsyncIterator[bytes]:
    """Async chunk stream, shaped like ``Request.stream()``."""
    for chunk in chunks:
        yield chunk


class CountingStream:
    """Chunk stream that remembers how far it was read."""

    def __init__(self, chunks: Sequence[bytes]) -> None:
        self._chunks = list(chunks)
        self.delivered = 0
        self.finished = False

    def __aiter__(self) -> CountingStream:
        return self

    async def __anext__(self) -> bytes:
        if self.delivered >= len(self._chunks):
            self.finished = True
            raise StopAsyncIteration
        chunk = self._chunks[self.delivered]
        self.delivered += 1
        return chunk
