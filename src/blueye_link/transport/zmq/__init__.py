"""ZeroMQ transport: the native protocol spoken by the drone.

Telemetry arrives on a SUB socket, requests go out on a DEALER socket to
the drone's REP socket, control messages go out on a PUB socket.
"""

from . import control
from . import publish
from . import request


def create(settings):
    """Return ``(request, subscribe, control)`` transports for *settings*."""

    return (
        request.Client(settings.url("req")),
        publish.Client(settings.url("pub")),
        control.Client(settings.url("ctrl")),
    )
