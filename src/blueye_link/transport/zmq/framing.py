"""ZMQ multipart framing for drone messages.

Request/Reply (DEALER -> REP)
    empty_delimiter, topic, encoded_message

Publish (PUB/SUB), both telemetry and control
    topic, encoded_message

The topic is the fully qualified message name, for example
``blueye.protocol.GetBatteryReq``; the message key is its last
dot-separated component.
"""

from __future__ import annotations

from typing import Sequence, Tuple


_DELIMITER = b""


def _topic_bytes(topic: str) -> bytes:
    return topic.encode("ascii")


def _topic_str(topic: bytes) -> str:
    return bytes(topic).decode("ascii", errors="replace")


def to_request_frames(topic: str, data: bytes) -> Tuple[bytes, ...]:
    """Encode a request for a DEALER socket talking to a REP peer."""

    return (_DELIMITER, _topic_bytes(topic), bytes(data))


def from_reply_frames(parts: Sequence[bytes]) -> Tuple[str, bytes]:
    """Decode DEALER reply parts into ``(topic, data)``.

    The REP peer echoes the envelope delimiter; it is stripped here.
    """

    parts = list(parts)
    while parts and parts[0] == _DELIMITER:
        parts.pop(0)

    if len(parts) != 2:
        raise ValueError(f"invalid reply: expected 2 parts, got {len(parts)}")

    return _topic_str(parts[0]), bytes(parts[1])


def to_pub_frames(topic: str, data: bytes) -> Tuple[bytes, ...]:
    """Encode a message for a PUB socket."""

    return (_topic_bytes(topic), bytes(data))


def from_pub_frames(parts: Sequence[bytes]) -> Tuple[str, bytes]:
    if len(parts) < 2:
        raise ValueError("invalid PUB message")

    return _topic_str(parts[0]), bytes(parts[1])
