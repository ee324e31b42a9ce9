"""Bounded request-body reader.

The body is pulled from the ASGI receive stream chunk by chunk. At most
``max_size + 1`` bytes are ever buffered -- one byte past the limit is
enough to know the body is too large -- but the stream is always read to
the end so the connection can be reused.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from natsbridge_bus.errors import BodyMissing, BodyTooLarge, MalformedContent

MAX_REQUEST_SIZE = 8192


def decode_json(payload: bytes) -> Any:
    """Decode *payload* as UTF-8 JSON or raise ``MalformedContent``."""
    try:
        return json.loads(payload.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise MalformedContent(f"Body is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedContent(f"Invalid JSON body: {e}") from e


class BodyReader:
    """Reads one request body exactly once.

    Usage::

        reader = BodyReader(request.stream())
        try:
            payload = await reader.read(MAX_REQUEST_SIZE, validate_json=True)
            ...
        finally:
            await reader.drain()
    """

    def __init__(self, chunks: AsyncIterator[bytes]) -> None:
        self._chunks = chunks
        self._exhausted = False
        self.bytes_seen = 0

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    async def read(self, max_size: int = MAX_REQUEST_SIZE, *, validate_json: bool = False) -> bytes:
        """Return the raw body.

        Raises:
            BodyMissing: the body is empty.
            BodyTooLarge: the body is longer than *max_size* bytes.
            MalformedContent: *validate_json* is set and the body is not JSON.
        """
        if self._exhausted:
            raise RuntimeError("Request body already consumed")

        buf = bytearray()
        async for chunk in self._chunks:
            self.bytes_seen += len(chunk)
            room = max_size + 1 - len(buf)
            if room > 0:
                buf += chunk[:room]
        self._exhausted = True

        if not buf:
            raise BodyMissing()
        if len(buf) > max_size:
            raise BodyTooLarge(max_size)
        payload = bytes(buf)
        if validate_json:
            decode_json(payload)
        return payload

    async def drain(self) -> int:
        """Consume and discard whatever is left. Returns the bytes discarded."""
        if self._exhausted:
            return 0
        discarded = 0
        async for chunk in self._chunks:
            discarded += len(chunk)
        self.bytes_seen += discarded
        self._exhausted = True
        return discarded
