""" Telemetry dispatch. Inbound publish messages are decoded through the
    registry and handed to the callbacks registered for that specific
    telemetry key, independently of any request/reply traffic.
"""

import logging
import threading
import weakref

from .errors import DecodeError, InvalidChannel, UnknownType
from .registry import Channel, key_of

logger = logging.getLogger(__name__)


def _reference(method):
    """ Return a weak reference to *method*, using :class:`weakref.WeakMethod`
        for bound methods so that the reference does not die with the
        transient bound-method object.
    """

    if hasattr(method, '__self__') and hasattr(method, '__func__'):
        return weakref.WeakMethod(method)
    else:
        return weakref.ref(method)


class TelemetrySubscriber:
    """ Typed observer registry, one callback list per telemetry key.

        Callbacks are held by weak reference: registering a callback does
        not keep it, or the object it is bound to, alive. Keep a reference
        for as long as the callback should fire.
    """

    def __init__(self, registry):

        self.registry = registry
        self.observers = dict()
        self.lock = threading.Lock()


    def _validate(self, key):

        channel = self.registry.classify(key)

        if channel is Channel.TELEMETRY:
            return

        if channel is Channel.UNKNOWN and key not in self.registry:
            raise UnknownType('unknown message type: ' + repr(key))

        raise InvalidChannel(key + ' is not a telemetry message')


    def observe(self, key, callback):
        """ Invoke *callback* with the decoded message every time telemetry
            *key* arrives.
        """

        if not callable(callback):
            raise TypeError('the registered method must be callable')

        self._validate(key)

        with self.lock:
            references = self.observers.setdefault(key, list())
            references.append(_reference(callback))


    def ignore(self, key, callback):
        """ Stop invoking *callback* for telemetry *key*. Unknown pairs are
            ignored.
        """

        with self.lock:
            references = self.observers.get(key, ())
            for reference in list(references):
                if reference() == callback:
                    references.remove(reference)
                    break


    def observed(self, key):
        """ Return the live callbacks registered for *key*, in registration
            order.
        """

        with self.lock:
            references = tuple(self.observers.get(key, ()))

        callbacks = list()
        for reference in references:
            callback = reference()
            if callback is not None:
                callbacks.append(callback)

        return callbacks


    def dispatch(self, topic, data):
        """ Handle one inbound publish message. Anything that is not a
            decodable telemetry message is logged and dropped.
        """

        key = key_of(topic)

        if self.registry.classify(key) is not Channel.TELEMETRY:
            logger.debug('discarding non-telemetry publish message %s', topic)
            return

        try:
            message = self.registry.decode(key, data)
        except DecodeError:
            logger.warning('discarding undecodable %s', key, exc_info=True)
            return

        with self.lock:
            references = tuple(self.observers.get(key, ()))

        invalid = list()

        for reference in references:
            callback = reference()

            if callback is None:
                invalid.append(reference)
                continue

            try:
                callback(message)
            except Exception:
                logger.exception('%s callback %r failed', key, callback)

        if invalid:
            with self.lock:
                references = self.observers.get(key, [])
                for reference in invalid:
                    if reference in references:
                        references.remove(reference)


# end of class TelemetrySubscriber


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
