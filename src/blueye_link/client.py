""" The :class:`Client` ties the pieces together: one registry, one
    session over the request, telemetry and control transports, the RPC
    engine, and the telemetry subscriber.

    Typical use::

        with blueye_link.Client() as drone:
            battery = drone.send_request('GetBatteryReq')
            depth = drone.get_telemetry('DepthTel')
            drone.subscribe('BatteryTel', on_battery)
"""

import logging

from . import config
from .engine import Engine
from .registry import Registry
from .session import Session
from .subscribe import TelemetrySubscriber
from .transport import backend

logger = logging.getLogger(__name__)


class Client:
    """ Client for a single drone. Connection settings not passed
        explicitly come from the environment, see :mod:`blueye_link.config`.
        If *registry* is None the :mod:`blueye.protocol` definitions are
        used. Pass *transports* as a ``(request, subscribe, control)``
        triple to bypass the configured backend entirely.

        The client connects immediately unless *connect* is False.
    """

    def __init__(self, transport=None, host=None, timeout=None, registry=None,
                        transports=None, connect=True, settings=None):

        if settings is None:
            settings = config.load(transport=transport, host=host, timeout=timeout)

        if registry is None:
            registry = Registry.default(settings.namespace)

        if transports is None:
            transports = backend(settings.transport).create(settings)

        request, subscribe, control = transports

        self.settings = settings
        self.registry = registry
        self.session = Session((request, subscribe, control))
        self.engine = Engine(registry, self.session, request, control, settings.timeout)
        self.subscriber = TelemetrySubscriber(registry)

        subscribe.on_message = self.subscriber.dispatch

        if connect:
            self.connect()


    def __enter__(self):
        return self


    def __exit__(self, *exc):
        self.close()


    @property
    def state(self):
        return self.session.state


    def connect(self):
        return self.session.connect()


    def disconnect(self):
        return self.session.disconnect()


    def close(self):
        """ Disconnect, if connected, and release the request queue. The
            client cannot be reused afterwards.
        """

        if self.session.ready():
            self.session.disconnect()

        self.engine.close()


    def send_request(self, request_key, args=None, timeout=None):
        """ Send request *request_key*, built from the field values in
            *args*, and return the decoded reply.
        """

        return self.engine.send_request(request_key, args, timeout)


    def get_telemetry(self, telemetry_key, timeout=None):
        """ Return the latest value of telemetry *telemetry_key*.
        """

        return self.engine.get_telemetry(telemetry_key, timeout)


    def send_control(self, control_key, args=None):
        return self.engine.send_control(control_key, args)


    def subscribe(self, telemetry_key, callback):
        """ Invoke *callback* with every *telemetry_key* message published by
            the drone. The callback is held by weak reference.
        """

        self.subscriber.observe(telemetry_key, callback)


    def unsubscribe(self, telemetry_key, callback):
        self.subscriber.ignore(telemetry_key, callback)


# end of class Client


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
