"""Starlette application: the two HTTP -> bus routes.

- POST /topics/{topic}   -- publish the body to {topic}, answer 204
- POST /requests/{topic} -- request on {topic}, answer 200 with the reply

Both routes run the same handler; only the dispatch operation differs.
The router is built per call to ``create_app`` and the bus client lives
on ``app.state``, so tests can build isolated apps around a fake bus.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.routing import Route

from natsbridge_bus.capability import BusClient
from natsbridge_bus.dispatch import DEFAULT_REQUEST_TIMEOUT, DispatchKind, dispatcher_for
from natsbridge_bus.errors import GatewayError, MissingTopic, UnsupportedMediaType
from natsbridge_server.codec import MAX_REQUEST_SIZE, BodyReader
from natsbridge_server.status import JSON_MEDIA_TYPE, Outcome, to_response

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("natsbridge_server.access")


def is_json_content_type(content_type: str) -> bool:
    """Accept ``application/json`` with or without parameters."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == JSON_MEDIA_TYPE


# ------------------------------------------------------------------ #
# Route handler
# ------------------------------------------------------------------ #


async def handle_request(request: Request, reader: BodyReader, kind: DispatchKind) -> Outcome:
    """Run one request through topic -> body -> dispatch.

    Any gateway error short-circuits to a failed outcome; there are no
    retries at this layer.
    """
    state = request.app.state
    topic = request.path_params.get("topic", "")
    try:
        if not topic:
            raise MissingTopic()

        content_type = request.headers.get("content-type", "")
        if not is_json_content_type(content_type):
            raise UnsupportedMediaType(content_type)

        payload = await reader.read(state.max_body_size, validate_json=True)

        dispatch = dispatcher_for(kind, timeout=state.request_timeout)
        result = await dispatch(state.bus, topic, payload)
    except GatewayError as e:
        return Outcome.failure(topic, e)
    return Outcome.success(result)


def make_endpoint(kind: DispatchKind) -> RequestResponseEndpoint:
    async def endpoint(request: Request) -> Response:
        # The body is always read to the end before the response goes out.
        reader = BodyReader(request.stream())
        try:
            try:
                outcome = await handle_request(request, reader, kind)
            finally:
                await reader.drain()
        except ClientDisconnect:
            logger.info("Client disconnected while sending %s", request.url.path)
            return Response(status_code=400)
        return to_response(outcome)

    endpoint.__name__ = f"{kind.value}_endpoint"
    return endpoint


# ------------------------------------------------------------------ #
# Access log
# ------------------------------------------------------------------ #


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request: client, method, path, status, duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        client = request.client.host if request.client else "-"
        access_logger.info(
            '%s "%s %s" %d %.1fms',
            client,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


# ------------------------------------------------------------------ #
# App factory
# ------------------------------------------------------------------ #


def create_app(
    bus: BusClient,
    *,
    max_body_size: int = MAX_REQUEST_SIZE,
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    close_bus_on_shutdown: bool = False,
) -> Starlette:
    """Create the gateway application around an already-connected *bus*."""

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        yield
        if close_bus_on_shutdown:
            await app.state.bus.close()

    publish_endpoint = make_endpoint(DispatchKind.PUBLISH)
    request_endpoint = make_endpoint(DispatchKind.REQUEST)

    routes = [
        Route("/topics/{topic:path}", publish_endpoint, methods=["POST"]),
        Route("/topics", publish_endpoint, methods=["POST"]),
        Route("/requests/{topic:path}", request_endpoint, methods=["POST"]),
        Route("/requests", request_endpoint, methods=["POST"]),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.bus = bus
    app.state.max_body_size = max_body_size
    app.state.request_timeout = request_timeout
    app.add_middleware(AccessLogMiddleware)
    return app
