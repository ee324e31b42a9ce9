"""Translate dispatch outcomes into HTTP responses.

| Condition                         | Status | Body                     |
|-----------------------------------|--------|--------------------------|
| topic missing or empty            | 404    | error message            |
| content type is not JSON          | 415    | error message            |
| body missing                      | 406    | error message            |
| body too large or malformed       | 400    | error message            |
| bus failure, including timeout    | 500    | error message            |
| publish succeeded                 | 204    | empty                    |
| request succeeded                 | 200    | reply, application/json  |

Error bodies are plain text and carry the cause's message as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from starlette.responses import PlainTextResponse, Response

from natsbridge_bus.dispatch import DispatchKind, DispatchResult
from natsbridge_bus.errors import (
    BodyMissing,
    BusError,
    GatewayError,
    MissingTopic,
    PayloadError,
    RoutingError,
    UnsupportedMediaType,
)

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"

# First match wins, so subclasses come before their bases.
ERROR_STATUS: tuple[tuple[type[GatewayError], int], ...] = (
    (MissingTopic, 404),
    (UnsupportedMediaType, 415),
    (BodyMissing, 406),
    (PayloadError, 400),
    (BusError, 500),
)


@dataclass(frozen=True)
class Outcome:
    """The single terminal result of one HTTP request."""

    topic: str
    result: DispatchResult | None = None
    error: GatewayError | None = None

    @classmethod
    def success(cls, result: DispatchResult) -> Outcome:
        return cls(topic=result.topic, result=result)

    @classmethod
    def failure(cls, topic: str, error: GatewayError) -> Outcome:
        return cls(topic=topic, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


def status_for_error(error: GatewayError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def to_response(outcome: Outcome) -> Response:
    """Build the HTTP response for *outcome*, logging failures first."""
    if outcome.error is not None:
        status = status_for_error(outcome.error)
        log_failure(outcome, status)
        return PlainTextResponse(str(outcome.error), status_code=status)

    result = outcome.result
    if result is None or result.kind == DispatchKind.PUBLISH:
        return Response(status_code=204)
    return Response(result.reply or b"", status_code=200, media_type=JSON_MEDIA_TYPE)


def log_failure(outcome: Outcome, status: int) -> None:
    error = outcome.error
    topic = outcome.topic or "<none>"
    if isinstance(error, RoutingError | PayloadError):
        logger.warning("Rejected request for topic %s (%d): %s", topic, status, error)
    else:
        logger.error("NATS error on topic %s (%d): %s", topic, status, error)
