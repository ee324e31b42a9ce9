"""Dispatch operations: what an HTTP request turns into on the bus.

Two operations share one signature, ``(bus, topic, payload)``:

- publish: fire-and-forget. Returns as soon as the bus client accepted
  the message.
- request: publish with a reply inbox and wait for the first reply, or
  give up after ``timeout`` seconds.

Failures are raised as ``BusError`` subclasses; the route handler turns
them into HTTP 500 responses. Nothing here retries.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from natsbridge_bus.capability import BusClient
from natsbridge_bus.errors import BusTimeout

DEFAULT_REQUEST_TIMEOUT = 4.0


class DispatchKind(StrEnum):
    PUBLISH = "publish"
    REQUEST = "request"


@dataclass(frozen=True)
class DispatchResult:
    """Successful outcome of a dispatch operation.

    ``reply`` is ``None`` for publishes and the reply body for requests.
    """

    kind: DispatchKind
    topic: str
    reply: bytes | None = None


Dispatcher = Callable[[BusClient, str, bytes], Awaitable[DispatchResult]]


async def publish(bus: BusClient, topic: str, payload: bytes) -> DispatchResult:
    """Send *payload* to *topic* without waiting for any reply."""
    await bus.publish(topic, payload)
    return DispatchResult(kind=DispatchKind.PUBLISH, topic=topic)


async def request(
    bus: BusClient,
    topic: str,
    payload: bytes,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> DispatchResult:
    """Send *payload* to *topic* and wait for exactly one reply.

    The bus client gets the timeout too, but the wait is also bounded
    here so a client that never honours it cannot hang the request.

    Raises:
        BusTimeout: no reply within *timeout* seconds.
        BusError: the bus client failed the request.
    """
    try:
        reply = await asyncio.wait_for(bus.request(topic, payload, timeout), timeout=timeout)
    except TimeoutError as e:
        raise BusTimeout(topic, timeout) from e
    return DispatchResult(kind=DispatchKind.REQUEST, topic=topic, reply=reply)


def dispatcher_for(kind: DispatchKind, *, timeout: float = DEFAULT_REQUEST_TIMEOUT) -> Dispatcher:
    """Return the operation bound to *kind*, with the request timeout applied."""
    if kind == DispatchKind.PUBLISH:
        return publish
    return functools.partial(request, timeout=timeout)
