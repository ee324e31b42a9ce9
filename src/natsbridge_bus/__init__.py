"""Message-bus side of the gateway.

- capability: the Publish/Request/Subscribe protocol the gateway needs
- nats_client: NATS implementation of that protocol
- dispatch: publish and request operations used by the HTTP routes
- diagnostic: test-mode subscriber that logs and acknowledges messages
- errors: the gateway's error taxonomy
"""

from natsbridge_bus.capability import BusClient, BusMessage, Subscription
from natsbridge_bus.diagnostic import DEFAULT_ACK, DiagnosticSubscriber
from natsbridge_bus.dispatch import (
    DEFAULT_REQUEST_TIMEOUT,
    DispatchKind,
    DispatchResult,
    dispatcher_for,
    publish,
    request,
)
from natsbridge_bus.errors import (
    BusError,
    BusNotConnected,
    BusTimeout,
    GatewayError,
    PayloadError,
    RoutingError,
    StartupError,
)

__all__ = [
    "BusClient",
    "BusMessage",
    "Subscription",
    "DiagnosticSubscriber",
    "DEFAULT_ACK",
    "DEFAULT_REQUEST_TIMEOUT",
    "DispatchKind",
    "DispatchResult",
    "dispatcher_for",
    "publish",
    "request",
    "GatewayError",
    "RoutingError",
    "PayloadError",
    "BusError",
    "BusTimeout",
    "BusNotConnected",
    "StartupError",
]
