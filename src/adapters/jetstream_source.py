"""Jetstream websocket event source.

Jetstream serves the firehose as JSON over a websocket. The source resumes
from the last seen ``time_us`` after a disconnect, so a flaky connection only
costs a reconnect delay rather than missed events.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Iterable, Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosedOK, WebSocketException

LOGGER = logging.getLogger(__name__)

DEFAULT_JETSTREAM_URL = "wss://jetstream2.us-east.bsky.network/subscribe"


def build_subscribe_url(
    base_url: str,
    wanted_collections: Iterable[str],
    cursor: Optional[int] = None,
) -> str:
    """Return the subscribe URL with collection and cursor query parameters."""

    params: list[tuple[str, str]] = [
        ("wantedCollections", collection) for collection in wanted_collections
    ]
    if cursor is not None:
        params.append(("cursor", str(cursor)))
    if not params:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode(params)}"


def decode_frame(frame: Any) -> Optional[dict]:
    """Decode one websocket frame, returning None when it is not a JSON object."""

    if isinstance(frame, bytes):
        frame = frame.decode("utf-8", errors="replace")
    try:
        message = json.loads(frame)
    except json.JSONDecodeError:
        LOGGER.warning("Skipping undecodable Jetstream frame")
        return None
    if not isinstance(message, dict):
        LOGGER.warning("Skipping non-object Jetstream frame")
        return None
    return message


class JetstreamSource:
    """Async iterator over decoded Jetstream messages."""

    def __init__(
        self,
        url: str,
        wanted_collections: Iterable[str],
        cursor: Optional[int] = None,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._url = url
        self._wanted_collections = list(wanted_collections)
        self._cursor = cursor
        self._reconnect_delay = reconnect_delay

    @property
    def cursor(self) -> Optional[int]:
        return self._cursor

    async def messages(self) -> AsyncIterator[dict]:
        """Yield messages forever, reconnecting after the connection drops."""

        while True:
            url = build_subscribe_url(self._url, self._wanted_collections, self._cursor)
            LOGGER.info("Connecting to %s", url)
            try:
                async with websockets.connect(url) as connection:
                    async for frame in connection:
                        message = decode_frame(frame)
                        if message is None:
                            continue
                        time_us = message.get("time_us")
                        if isinstance(time_us, int):
                            self._cursor = time_us
                        yield message
            except ConnectionClosedOK:
                LOGGER.info("Jetstream closed the connection")
            except (WebSocketException, OSError) as exc:
                # Abnormal closes and rejected handshakes (a 502/503 from the
                # relay) are both retried after the reconnect delay.
                LOGGER.warning("Jetstream connection lost: %s", exc)

            await asyncio.sleep(self._reconnect_delay)
