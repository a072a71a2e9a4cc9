"""Shared plumbing for the WebSocket transports.

Each transport owns one connection and one receive thread; the thread
iterates over inbound frames until the connection closes.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Union

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect

from ..base import TransportConnectionError, TransportNotReady

logger = logging.getLogger(__name__)


class Connection:
    """Mixin implementing open/close/is_open over a WebSocket URL.

    Subclasses implement :meth:`_handle_incoming` for inbound frames.
    """

    open_timeout = 5.0

    def __init__(self, url: str):
        self.url = url
        self.connection: Optional[ClientConnection] = None
        self._thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"<{type(self).__module__}.{type(self).__name__} {self.url}>"

    @property
    def is_open(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def open(self) -> None:
        if self.connection is not None:
            return

        try:
            self.connection = connect(self.url, open_timeout=self.open_timeout)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportConnectionError(f"{self.url}: {e}") from e

        self._thread = threading.Thread(
            target=self.run, name=f"websocket:{self.url}", daemon=True
        )
        self._thread.start()
        logger.debug("connected to %s", self.url)

    def close(self) -> None:
        connection = self.connection
        if connection is None:
            return

        connection.close()
        if self._thread is not None:
            self._thread.join(timeout=5)

        self.connection = None
        self._thread = None
        logger.debug("connection to %s closed", self.url)

    def _send(self, frame: str) -> None:
        connection = self.connection
        if connection is None:
            raise TransportNotReady(f"{self.url}: connection is closed")

        try:
            connection.send(frame)
        except ConnectionClosed as e:
            raise TransportNotReady(f"{self.url}: {e}") from e

    def _handle_incoming(self, frame: Union[str, bytes]) -> None:
        raise NotImplementedError

    def run(self) -> None:
        try:
            for frame in self.connection:
                try:
                    self._handle_incoming(frame)
                except Exception:
                    logger.exception("%s: failed to handle frame", self.url)
        except ConnectionClosed as e:
            logger.warning("%s: connection lost: %s", self.url, e)
