""" Connection lifecycle for the set of transports shared by a client. The
    :class:`Session` guards against attaching or detaching the same
    sockets twice, and gives callers an observable readiness signal.
"""

import enum
import logging
import threading

from .transport import TransportNotReady

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


class Session:
    """ State machine over one or more transports. *transports* is a
        sequence of :class:`blueye_link.transport.base.Transport` instances;
        the same instance listed twice is only opened and closed once.

        State changes are only made through :func:`_transition`, which
        notifies every observer synchronously, in registration order,
        before returning.
    """

    def __init__(self, transports=()):

        unique = list()
        for transport in transports:
            if not any(transport is seen for seen in unique):
                unique.append(transport)

        self.transports = unique
        self.state = SessionState.DISCONNECTED
        self.observers = list()

        self.lock = threading.RLock()
        self.connected = threading.Event()


    def observe(self, callback):
        """ Register *callback* to be invoked with the new
            :class:`SessionState` whenever the state changes.
        """

        if not callable(callback):
            raise TypeError('the registered method must be callable')

        self.observers.append(callback)


    def ready(self):
        return self.state is SessionState.CONNECTED


    def wait(self, timeout=None):
        """ Block until the session is connected. Returns True if it is,
            False if *timeout* seconds elapsed first.
        """

        return self.connected.wait(timeout)


    def _transition(self, state):

        previous = self.state
        self.state = state

        if state is SessionState.CONNECTED:
            self.connected.set()
        else:
            self.connected.clear()

        logger.debug('session: %s -> %s', previous.value, state.value)

        for callback in tuple(self.observers):
            try:
                callback(state)
            except Exception:
                logger.exception('session observer %r failed', callback)


    def connect(self):
        """ Open every transport. Returns True if this call performed the
            attach, False if it was a no-op or the attach failed.
        """

        if self.state is SessionState.CONNECTING:
            logger.warning('connect() ignored, session is already connecting')
            return False

        with self.lock:
            if self.state is not SessionState.DISCONNECTED:
                logger.warning('connect() ignored, session is already %s', self.state.value)
                return False

            self._transition(SessionState.CONNECTING)

            opened = list()

            try:
                for transport in self.transports:
                    transport.open()
                    opened.append(transport)
            except Exception:
                logger.exception('connect() failed, detaching')

                for transport in reversed(opened):
                    self._close(transport)

                self._transition(SessionState.DISCONNECTED)
                return False

            self._transition(SessionState.CONNECTED)
            return True


    def disconnect(self):
        """ Close every transport. Returns True if this call performed the
            detach, False if it was refused or a no-op.
        """

        # A connect() in progress on another thread holds the lock until
        # the attach completes; refuse without waiting for it.

        if self.state is SessionState.CONNECTING:
            logger.error('disconnect() refused while the session is connecting')
            return False

        with self.lock:
            if self.state is SessionState.DISCONNECTED:
                logger.warning('disconnect() ignored, session is already disconnected')
                return False

            if self.state is SessionState.CONNECTING:
                logger.error('disconnect() refused while the session is connecting')
                return False

            for transport in reversed(self.transports):
                self._close(transport)

            self._transition(SessionState.DISCONNECTED)
            return True


    def _close(self, transport):

        try:
            transport.close()
        except Exception:
            logger.exception('failed to close %r', transport)


    def require(self, operation):
        """ Return True if the session is connected. Otherwise log a
            :class:`TransportNotReady` condition for *operation* and return
            False; callers treat that as a no-op.
        """

        if self.ready():
            return True

        error = TransportNotReady('%s: session is %s' % (operation, self.state.value))
        logger.warning('%s', error)
        return False


# end of class Session


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
