"""ZeroMQ control transport: one-way messages on a PUB socket."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import zmq

from ..base import ControlTransport, TransportNotReady
from .framing import to_pub_frames

logger = logging.getLogger(__name__)


class Client(ControlTransport):
    """PUB client connected to the drone's control SUB socket."""

    def __init__(self, address: str, context: Optional[zmq.Context] = None):
        self.address = address
        self.context = context or zmq.Context.instance()
        self.socket: Optional[zmq.Socket] = None

        # Control messages may be sent from any thread; without the lock two
        # concurrent send_multipart() calls can interleave their parts.
        self.socket_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"<zmq control.Client {self.address}>"

    @property
    def is_open(self) -> bool:
        return self.socket is not None

    def open(self) -> None:
        with self.socket_lock:
            if self.socket is not None:
                return

            socket = self.context.socket(zmq.PUB)
            socket.setsockopt(zmq.LINGER, 0)
            socket.connect(self.address)
            self.socket = socket

        logger.debug("control channel connected to %s", self.address)

    def close(self) -> None:
        with self.socket_lock:
            if self.socket is None:
                return

            self.socket.close()
            self.socket = None

        logger.debug("control channel to %s closed", self.address)

    def publish(self, topic: str, data: bytes) -> None:
        with self.socket_lock:
            if self.socket is None:
                raise TransportNotReady(f"{self.address}: control channel is closed")

            self.socket.send_multipart(to_pub_frames(topic, data))
