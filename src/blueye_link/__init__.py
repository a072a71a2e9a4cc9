""" Python client for Blueye underwater drones. This includes the
    request/reply engine, telemetry subscriptions, one-way control
    messages, and an offline decoder for binlog recordings.
"""

# Utility components.

from . import json
from . import config
from . import errors

# Protocol and session components, leaves first.

from . import registry
from . import transport
from . import fifo
from . import session
from . import engine
from . import subscribe
from . import binlog

# Primary public-facing interfaces.

from .client import Client
from .registry import Channel, Envelope, Registry
from .session import SessionState
from .transport import TransportNotReady, TransportTimeout

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
