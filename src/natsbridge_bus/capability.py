"""The bus capability the gateway depends on.

The gateway never talks to a wire protocol directly. It needs exactly
three things from a message bus -- publish, request and subscribe --
and anything that provides them can stand behind the HTTP routes.
``NatsBusClient`` is the production implementation; tests use an
in-memory fake.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class BusMessage:
    """A message delivered to a subscriber.

    ``reply`` is the return address for request/reply messages and an
    empty string for plain publishes.
    """

    subject: str
    data: bytes
    reply: str = ""


MessageCallback = Callable[[BusMessage], Awaitable[None]]


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


class BusClient(Protocol):
    """Publish/Request/Subscribe capability.

    Implementations must be safe for concurrent use by many in-flight
    HTTP requests on the same event loop, and must raise
    ``natsbridge_bus.errors.BusError`` subclasses for every failure.
    """

    async def publish(self, subject: str, payload: bytes) -> None:
        """Hand *payload* off to the bus. Returns once the client accepted it."""
        ...

    async def request(self, subject: str, payload: bytes, timeout: float) -> bytes:
        """Publish with a reply inbox and return the first reply's data."""
        ...

    async def subscribe(self, subject: str, callback: MessageCallback) -> Subscription:
        """Deliver every message on *subject* to *callback* until unsubscribed."""
        ...

    async def close(self) -> None: ...
