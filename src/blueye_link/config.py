""" Runtime configuration. Every setting has a built-in default and can be
    overridden from the environment; explicit arguments passed to
    :class:`blueye_link.Client` override both.

    ============================== =========================================
    Variable                       Meaning
    ============================== =========================================
    BLUEYE_LINK_TRANSPORT          ``zmq`` (default) or ``websocket``
    BLUEYE_LINK_HOST               address of the drone or gateway
    BLUEYE_LINK_PUB_PORT           ZeroMQ telemetry (PUB) port
    BLUEYE_LINK_REQ_PORT           ZeroMQ request (REP) port
    BLUEYE_LINK_CTRL_PORT          ZeroMQ control (SUB) port
    BLUEYE_LINK_WS_PUBSUB_PORT     WebSocket telemetry port
    BLUEYE_LINK_WS_REQREP_PORT     WebSocket request/reply port
    BLUEYE_LINK_TIMEOUT            default request timeout, in seconds
    BLUEYE_LINK_NAMESPACE          protobuf package prefix for topics
    ============================== =========================================
"""

import os

transports = ('zmq', 'websocket')

default_host = {'zmq': '192.168.1.101', 'websocket': 'localhost'}

default_ports = {
    'pub': 5555,
    'req': 5556,
    'ctrl': 5557,
    'ws_pubsub': 8765,
    'ws_reqrep': 8766,
}

default_timeout = 1.0
default_namespace = 'blueye.protocol'


class Settings:
    """ A snapshot of the configuration in effect. Instances are normally
        created via :func:`load`, which consults the environment.
    """

    def __init__(self, transport='zmq', host=None, ports=None, timeout=None, namespace=None):

        if transport not in transports:
            raise ValueError('unknown transport: ' + repr(transport))

        if host is None:
            host = default_host[transport]

        merged = dict(default_ports)
        if ports:
            merged.update(ports)

        if timeout is None:
            timeout = default_timeout

        if namespace is None:
            namespace = default_namespace

        self.transport = transport
        self.host = host
        self.ports = merged
        self.timeout = float(timeout)
        self.namespace = namespace


    def __repr__(self):
        return 'Settings(transport=%r, host=%r, ports=%r, timeout=%r, namespace=%r)' % (
                self.transport, self.host, self.ports, self.timeout, self.namespace)


    def url(self, name):
        """ Return the connection URL for the named port, formatted for the
            active transport.
        """

        port = self.ports[name]

        if self.transport == 'websocket':
            return 'ws://%s:%d' % (self.host, port)
        else:
            return 'tcp://%s:%d' % (self.host, port)


# end of class Settings



def _env(name, environ):
    return environ.get('BLUEYE_LINK_' + name)


def load(environ=None, **overrides):
    """ Build a :class:`Settings` instance from the environment. Any keyword
        arguments that are not None take precedence over the environment.
    """

    if environ is None:
        environ = os.environ

    transport = overrides.get('transport') or _env('TRANSPORT', environ) or 'zmq'
    host = overrides.get('host') or _env('HOST', environ)

    ports = dict()
    for name in default_ports:
        value = _env(name.upper() + '_PORT', environ)
        if value:
            ports[name] = int(value)

    if overrides.get('ports'):
        ports.update(overrides['ports'])

    timeout = overrides.get('timeout')
    if timeout is None:
        timeout = _env('TIMEOUT', environ)

    namespace = overrides.get('namespace') or _env('NAMESPACE', environ)

    return Settings(transport, host, ports, timeout, namespace)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
