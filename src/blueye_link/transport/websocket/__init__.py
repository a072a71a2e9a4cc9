"""WebSocket transport: JSON text frames through a gateway.

Two connections are used, one for telemetry (which also carries control
messages) and one for request/reply.
"""

from . import publish
from . import request


def create(settings):
    """Return ``(request, subscribe, control)`` transports for *settings*."""

    pubsub = publish.Client(settings.url("ws_pubsub"))

    return (
        request.Client(settings.url("ws_reqrep")),
        pubsub,
        pubsub,
    )
