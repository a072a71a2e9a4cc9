"""Transport interface.

This is the (small) contract that transport implementations follow. The
RPC engine, the telemetry subscriber and the session only ever talk to
these abstract classes, so the ZeroMQ and WebSocket variants can be
swapped without touching them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportTimeout(TransportError):
    """A request did not receive a timely response."""


class TransportNotReady(TransportError):
    """An operation was attempted before connect() or after disconnect()."""


class TransportConnectionError(TransportError):
    """The transport could not establish or maintain a connection."""


# Callback signatures. Tokens are opaque correlation values chosen by the
# engine; a reply token of None means the transport could not tell which
# request the reply belongs to.

ReplyHandler = Callable[[Optional[str], str, bytes], None]
MessageHandler = Callable[[str, bytes], None]


class Transport(ABC):
    """Minimal contract for a wire-level transport."""

    @abstractmethod
    def open(self) -> None:
        """Establish the underlying connection/socket."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection/socket."""

    @property
    def is_open(self) -> bool:
        """Whether the transport is currently connected."""
        return False


class RequestTransport(Transport):
    """The exclusive request/reply channel.

    Replies are delivered by calling :attr:`on_reply` from the transport's
    own receive thread with ``(token, topic, data)``.
    """

    on_reply: Optional[ReplyHandler] = None

    @abstractmethod
    def send(self, token: str, topic: str, data: bytes) -> None:
        """Send one encoded request tagged with correlation *token*."""

    def abandon(self, token: str) -> None:
        """The engine gave up waiting on *token*; no reply for it may be
        delivered against a later request."""


class SubscribeTransport(Transport):
    """The read-only telemetry channel.

    Every inbound message is delivered by calling :attr:`on_message` from
    the transport's receive thread with ``(topic, data)``.
    """

    on_message: Optional[MessageHandler] = None


class ControlTransport(Transport):
    """The one-way control channel."""

    @abstractmethod
    def publish(self, topic: str, data: bytes) -> None:
        """Send one encoded control message; nothing is expected back."""
