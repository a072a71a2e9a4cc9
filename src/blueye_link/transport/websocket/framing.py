"""JSON text framing used by the WebSocket gateway.

Every frame is a JSON object::

    {"id": "<token>", "key": "blueye.protocol.GetBatteryReq", "data": "<base64>"}

``id`` is present on requests and, when the gateway echoes it, on
replies; telemetry and control frames carry only ``key`` and ``data``.
"""

from __future__ import annotations

import base64
import binascii
from typing import Optional, Tuple, Union

from ... import json


def encode(topic: str, data: bytes, token: Optional[str] = None) -> str:
    """Return the text frame for one encoded message."""

    frame = {}
    if token is not None:
        frame["id"] = token

    frame["key"] = topic
    frame["data"] = base64.b64encode(bytes(data)).decode("ascii")
    return json.dumps(frame).decode("utf-8")


def decode(frame: Union[str, bytes]) -> Tuple[Optional[str], str, bytes]:
    """Parse one text frame into ``(token, topic, data)``.

    Raises :class:`ValueError` if the frame is not a well formed message.
    """

    try:
        parsed = json.loads(frame)
    except json.JSONDecodeError as e:
        raise ValueError(f"frame is not JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise ValueError("frame is not a JSON object")

    topic = parsed.get("key")
    if not isinstance(topic, str) or topic == "":
        raise ValueError("frame has no key")

    encoded = parsed.get("data") or ""
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"frame data is not base64: {e}") from e

    token = parsed.get("id")
    if token is not None:
        token = str(token)

    return token, topic, data
