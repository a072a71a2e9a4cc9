"""WebSocket request/reply transport.

Requests carry a generated id; when the gateway echoes it back the reply
is routed by id, otherwise the engine falls back to the single request
it has outstanding. Without the id a late reply looks exactly like the
answer to the next request, so an abandoned request costs a reconnect:
whatever the gateway still sends for it goes to a closed connection.
"""

from __future__ import annotations

import logging
from typing import Union

from ..base import RequestTransport, TransportConnectionError
from .connection import Connection
from .framing import decode, encode

logger = logging.getLogger(__name__)


class Client(Connection, RequestTransport):
    """Issue requests over a dedicated WebSocket connection."""

    def send(self, token: str, topic: str, data: bytes) -> None:
        self._send(encode(topic, data, token))

    def abandon(self, token: str) -> None:
        if self.connection is None:
            return

        logger.debug("%s: abandoning request %s, reconnecting", self.url, token)
        self.close()

        try:
            self.open()
        except TransportConnectionError as e:
            # Left closed; the next send reports TransportNotReady.
            logger.warning("%s: reconnect failed: %s", self.url, e)

    def _handle_incoming(self, frame: Union[str, bytes]) -> None:
        try:
            token, topic, data = decode(frame)
        except ValueError as e:
            logger.warning("%s: discarding malformed reply: %s", self.url, e)
            return

        handler = self.on_reply
        if handler is not None:
            handler(token, topic, data)
