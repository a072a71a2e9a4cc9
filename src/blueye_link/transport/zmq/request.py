"""ZeroMQ request/reply transport.

The drone answers requests on a REP socket, which processes exactly one
request at a time and answers in order. There is no correlation id on the
wire: the reply read off the socket belongs to the one request currently
outstanding. When the engine abandons a request the DEALER socket is
thrown away and re-created, so a late reply can never be read against the
next request (the "lazy pirate" pattern).

All socket operations happen on the client's background thread; callers
hand work over through an outbox queue and an inproc signal socket.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Sequence

import zmq

from ..base import RequestTransport, TransportNotReady
from .framing import from_reply_frames, to_request_frames

logger = logging.getLogger(__name__)

_SEND = "send"
_RESET = "reset"
_STOP = "stop"


class Client(RequestTransport):
    """Issue requests via a ZeroMQ DEALER socket and receive replies."""

    poll_interval = 1000    # milliseconds

    def __init__(self, address: str, context: Optional[zmq.Context] = None):
        self.address = address
        self.context = context or zmq.Context.instance()

        self.socket: Optional[zmq.Socket] = None
        self._outbox: queue.SimpleQueue = queue.SimpleQueue()
        self._outstanding: Optional[str] = None
        self._signal_lock = threading.Lock()
        self._signal_rx: Optional[zmq.Socket] = None
        self._signal_tx: Optional[zmq.Socket] = None
        self._thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"<zmq request.Client {self.address}>"

    @property
    def is_open(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _new_socket(self) -> zmq.Socket:
        socket = self.context.socket(zmq.DEALER)
        socket.setsockopt(zmq.LINGER, 0)
        socket.connect(self.address)
        return socket

    def open(self) -> None:
        if self._thread is not None:
            return

        internal = f"inproc://request.Client:signal:{id(self)}"
        self._signal_rx = self.context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = self.context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)

        self.socket = self._new_socket()
        self._outstanding = None

        self._thread = threading.Thread(
            target=self.run, name=f"zmq-request:{self.address}", daemon=True
        )
        self._thread.start()
        logger.debug("request channel connected to %s", self.address)

    def close(self) -> None:
        thread = self._thread
        if thread is None:
            return

        if thread.is_alive():
            self._signal(_STOP, None)
            thread.join(timeout=5)

        with self._signal_lock:
            self._signal_tx.close()
            self._signal_tx = None

        self._thread = None
        logger.debug("request channel to %s closed", self.address)

    def _signal(self, op: str, token: Optional[str], frames: Sequence[bytes] = ()) -> None:
        with self._signal_lock:
            if self._signal_tx is None:
                raise TransportNotReady(f"{self.address}: request channel is closed")

            self._outbox.put((op, token, tuple(frames)))
            self._signal_tx.send(b"")

    def send(self, token: str, topic: str, data: bytes) -> None:
        if not self.is_open:
            raise TransportNotReady(f"{self.address}: request channel is closed")

        self._signal(_SEND, token, to_request_frames(topic, data))

    def abandon(self, token: str) -> None:
        if self.is_open:
            self._signal(_RESET, token)

    # --- background thread ---

    def _reset(self, poller: zmq.Poller) -> None:
        poller.unregister(self.socket)
        self.socket.close()
        self.socket = self._new_socket()
        poller.register(self.socket, zmq.POLLIN)
        self._outstanding = None

    def _handle_outgoing(self, poller: zmq.Poller) -> bool:
        # Clear one signal and process one command. Returns False on stop.
        self._signal_rx.recv(flags=zmq.NOBLOCK)
        op, token, frames = self._outbox.get(block=False)

        if op == _STOP:
            return False

        if op == _RESET:
            if token == self._outstanding:
                logger.debug("%s: abandoning request %s, re-creating socket", self.address, token)
                self._reset(poller)
            return True

        if self._outstanding is not None:
            logger.warning("%s: request %s sent while %s is outstanding",
                           self.address, token, self._outstanding)

        self._outstanding = token
        self.socket.send_multipart(frames)
        return True

    def _handle_incoming(self, parts: Sequence[bytes]) -> None:
        try:
            topic, data = from_reply_frames(parts)
        except ValueError:
            logger.warning("%s: discarding malformed reply", self.address, exc_info=True)
            return

        token = self._outstanding
        self._outstanding = None

        if token is None:
            logger.debug("%s: discarding unsolicited reply %s", self.address, topic)
            return

        handler = self.on_reply
        if handler is None:
            return

        try:
            handler(token, topic, data)
        except Exception:
            logger.exception("%s: reply handler failed", self.address)

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        running = True
        try:
            while running:
                for active, _flag in poller.poll(self.poll_interval):
                    if active == self._signal_rx:
                        running = self._handle_outgoing(poller)
                        if not running:
                            break
                    elif active == self.socket:
                        parts = tuple(self.socket.recv_multipart())
                        self._handle_incoming(parts)
        except zmq.ZMQError:
            logger.exception("%s: request channel failed", self.address)
        finally:
            self.socket.close()
            self._signal_rx.close()
