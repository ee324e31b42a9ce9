"""Error taxonomy for the gateway.

Every failure the gateway knows about is a ``GatewayError``. The route
handler catches the client-fault and backend-fault families and turns
them into HTTP responses; ``StartupError`` is fatal and only raised
before serving begins.

- RoutingError: missing topic, wrong content type (client fault)
- PayloadError: missing, oversized or malformed body (client fault)
- BusError: send failure, request timeout, no connection (backend fault)
- StartupError: unresolved configuration, connection failure (fatal)
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""


# ------------------------------------------------------------------ #
# Client faults
# ------------------------------------------------------------------ #


class RoutingError(GatewayError):
    """The request could not be routed to a topic."""


class MissingTopic(RoutingError):
    def __init__(self) -> None:
        super().__init__("Missing topic")


class UnsupportedMediaType(RoutingError):
    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        shown = content_type or "<none>"
        super().__init__(f"Unsupported content type {shown!r}, expected 'application/json'")


class PayloadError(GatewayError):
    """The request body was unusable."""


class BodyMissing(PayloadError):
    def __init__(self) -> None:
        super().__init__("Missing request body")


class BodyTooLarge(PayloadError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Request body exceeds {limit} bytes")


class MalformedContent(PayloadError):
    """The body failed structural (JSON) decoding."""


# ------------------------------------------------------------------ #
# Backend faults
# ------------------------------------------------------------------ #


class BusError(GatewayError):
    """The message bus rejected or failed an operation."""


class BusTimeout(BusError):
    """A request did not receive a reply in time."""

    def __init__(self, topic: str, timeout: float) -> None:
        self.topic = topic
        self.timeout = timeout
        super().__init__(f"Timeout: no reply on {topic!r} within {timeout:g}s")


class BusNotConnected(BusError):
    """The bus client has no usable connection."""


class BusPublishError(BusError):
    """The bus client failed to hand a message off."""


# ------------------------------------------------------------------ #
# Fatal
# ------------------------------------------------------------------ #


class StartupError(GatewayError):
    """The process cannot start serving."""


class Unresolved(StartupError):
    """A required configuration field has no value from any source."""

    def __init__(self, field: str, sources: list[str]) -> None:
        self.field = field
        self.sources = sources
        super().__init__(f"Missing {field}: tried {', '.join(sources)}")


class InvalidSetting(StartupError):
    """A configuration value is present but cannot be used."""


class ConnectError(StartupError):
    """The initial connection to the bus failed."""
