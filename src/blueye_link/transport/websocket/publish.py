"""WebSocket telemetry transport.

The same connection carries outbound control messages: they expect no
reply, so they must not occupy the request connection.
"""

from __future__ import annotations

import logging
from typing import Union

from ..base import ControlTransport, SubscribeTransport
from .connection import Connection
from .framing import decode, encode

logger = logging.getLogger(__name__)


class Client(Connection, SubscribeTransport, ControlTransport):
    """Receive telemetry frames and send control frames."""

    def publish(self, topic: str, data: bytes) -> None:
        self._send(encode(topic, data))

    def _handle_incoming(self, frame: Union[str, bytes]) -> None:
        try:
            _token, topic, data = decode(frame)
        except ValueError as e:
            logger.warning("%s: discarding malformed telemetry: %s", self.url, e)
            return

        handler = self.on_message
        if handler is not None:
            handler(topic, data)
