"""Transport layer implementations."""

import importlib

from .base import (
    Transport,
    RequestTransport,
    SubscribeTransport,
    ControlTransport,
    TransportError,
    TransportTimeout,
    TransportNotReady,
    TransportConnectionError,
)

_BACKENDS = {
    "zmq": ".zmq",
    "websocket": ".websocket",
}


def backend(name):
    """Return the backend module for transport variant *name*.

    Each backend exposes ``create(settings)`` returning a
    ``(request, subscribe, control)`` triple of transports.
    """

    try:
        module = _BACKENDS[name]
    except KeyError:
        raise ValueError(f"unknown transport backend: {name!r}") from None

    return importlib.import_module(module, __name__)
