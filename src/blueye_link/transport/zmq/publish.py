"""ZeroMQ publish/subscribe transport, client side."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import zmq

from ..base import SubscribeTransport
from .framing import from_pub_frames

logger = logging.getLogger(__name__)


class Client(SubscribeTransport):
    """SUB client, subscribed to every topic the drone publishes.

    Messages are handed to :attr:`on_message` on the receive thread as
    soon as they are read; nothing is buffered beyond the socket itself.
    """

    poll_interval = 250     # milliseconds

    def __init__(self, address: str, context: Optional[zmq.Context] = None):
        self.address = address
        self.context = context or zmq.Context.instance()

        self.socket: Optional[zmq.Socket] = None
        self.shutdown = False
        self._thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"<zmq publish.Client {self.address}>"

    @property
    def is_open(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def open(self) -> None:
        if self._thread is not None:
            return

        self.socket = self.context.socket(zmq.SUB)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.setsockopt(zmq.SUBSCRIBE, b"")
        self.socket.connect(self.address)

        self.shutdown = False
        self._thread = threading.Thread(
            target=self.run, name=f"zmq-subscribe:{self.address}", daemon=True
        )
        self._thread.start()
        logger.debug("telemetry channel connected to %s", self.address)

    def close(self) -> None:
        thread = self._thread
        if thread is None:
            return

        self.shutdown = True
        thread.join(timeout=5)
        self._thread = None
        logger.debug("telemetry channel to %s closed", self.address)

    def _handle_incoming(self, parts) -> None:
        try:
            topic, data = from_pub_frames(parts)
        except ValueError:
            logger.warning("%s: discarding malformed publish message", self.address)
            return

        handler = self.on_message
        if handler is None:
            return

        try:
            handler(topic, data)
        except Exception:
            logger.exception("%s: telemetry handler failed for %s", self.address, topic)

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)

        try:
            while not self.shutdown:
                for active, _flag in poller.poll(self.poll_interval):
                    if active == self.socket:
                        parts = self.socket.recv_multipart(flags=zmq.NOBLOCK)
                        self._handle_incoming(parts)
        except zmq.ZMQError:
            logger.exception("%s: telemetry channel failed", self.address)
        finally:
            self.socket.close()
