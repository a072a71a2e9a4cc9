""" In-memory transports implementing the transport contract, so that the
    session, engine and subscriber can be exercised without sockets.
"""

import time

from blueye_link.transport.base import ControlTransport, RequestTransport, SubscribeTransport


class _Counting:

    def __init__(self):
        self.opened = 0
        self.closed = 0
        self.fail_open = False
        self.open_delay = 0
        self._open = False


    @property
    def is_open(self):
        return self._open


    def open(self):
        if self.fail_open:
            raise OSError('refused')
        time.sleep(self.open_delay)
        self.opened += 1
        self._open = True


    def close(self):
        self.closed += 1
        self._open = False


class MemoryRequest(_Counting, RequestTransport):
    """ Request transport whose *responder*, if any, is called with every
        sent request and returns ``(token, topic, data)`` to deliver as the
        reply, or None to stay silent.
    """

    def __init__(self, responder=None):
        _Counting.__init__(self)
        self.responder = responder
        self.on_abandon = None
        self.sent = list()
        self.abandoned = list()


    def send(self, token, topic, data):
        self.sent.append((token, topic, data))

        if self.responder is None:
            return

        reply = self.responder(token, topic, data)
        if reply is not None:
            self.on_reply(*reply)


    def abandon(self, token):
        self.abandoned.append(token)

        if self.on_abandon is not None:
            self.on_abandon(token)


class MemorySubscribe(_Counting, SubscribeTransport):

    def deliver(self, topic, data):
        self.on_message(topic, data)


class MemoryControl(_Counting, ControlTransport):

    def __init__(self):
        _Counting.__init__(self)
        self.published = list()


    def publish(self, topic, data):
        self.published.append((topic, data))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
