""" The request/reply engine. Requests are encoded through the registry,
    serialized through a :class:`blueye_link.fifo.RequestQueue` so that
    exactly one exchange is ever outstanding on the request channel, and
    correlated with their replies by a token carried alongside each
    request.
"""

import concurrent.futures
import logging
import threading
import time
import uuid

from .errors import InvalidChannel, UnexpectedReply, UnexpectedTelemetryType, UnknownType
from .fifo import RequestQueue
from .registry import Channel, EMPTY_KEY, Envelope, TELEMETRY_REQUEST, key_of
from .session import SessionState
from .transport import TransportNotReady, TransportTimeout

logger = logging.getLogger(__name__)


class PendingRequest:
    """ Client-side helper tracking one request until its reply arrives.
        The *id* is the correlation token handed to the transport.
    """

    def __init__(self, request_key):

        self.id = uuid.uuid4().hex
        self.request_key = request_key
        self.created = time.monotonic()
        self.response = None
        self.rep_event = threading.Event()


    def __repr__(self):
        return '<PendingRequest %s %s>' % (self.request_key, self.id)


    def wait(self, timeout):
        """ Block until the reply arrives. Returns True if it did, False if
            *timeout* seconds elapsed first.
        """

        return self.rep_event.wait(timeout)


    def _complete(self, key, data):
        """ Store the reply and release the waiting caller. Only the first
            completion counts.
        """

        if self.rep_event.is_set():
            return

        self.response = (key, data)
        self.rep_event.set()


# end of class PendingRequest



class Engine:
    """ Issue requests and control messages on behalf of a client.

        *registry* is a :class:`blueye_link.registry.Registry`, *session* a
        :class:`blueye_link.session.Session`, *request* and *control* the
        request and control transports. *timeout* is the default number of
        seconds to wait for a reply.
    """

    def __init__(self, registry, session, request, control=None, timeout=1.0, queue=None):

        if queue is None:
            queue = RequestQueue()

        self.registry = registry
        self.session = session
        self.request_transport = request
        self.control_transport = control
        self.timeout = timeout
        self.queue = queue

        self.lock = threading.Lock()
        self.pending = dict()
        self.current = None

        request.on_reply = self.handle_reply


    def _require(self, key, channel):

        found = self.registry.classify(key)

        if found is Channel.UNKNOWN:
            if key in self.registry:
                raise InvalidChannel('%s is not a %s message' % (key, channel.name.lower()))
            raise UnknownType('unknown message type: ' + repr(key))

        if found is not channel:
            raise InvalidChannel('%s is a %s message, expected %s' % (
                                    key, found.name.lower(), channel.name.lower()))


    def send_request(self, request_key, args=None, timeout=None):
        """ Send a request and return the decoded reply. The reply is None
            if the drone answered with an empty message, or if the session
            is not connected (the condition is logged, nothing is sent).

            Raises :class:`blueye_link.transport.TransportTimeout` if no
            reply arrives within *timeout* seconds of this call, and the
            :mod:`blueye_link.errors` exceptions for invalid keys or
            replies.
        """

        self._require(request_key, Channel.REQUEST)
        data = self.registry.encode(request_key, args)

        deadline = self._deadline(timeout)

        if not self._ready(request_key, deadline):
            return None

        future = self.queue.enqueue(self._exchange, request_key, data, deadline)

        try:
            reply_key, reply_data = future.result(max(deadline - time.monotonic(), 0))
        except concurrent.futures.TimeoutError:
            # Still waiting behind another request: withdraw it. A task
            # already running is our own exchange, which settles on the
            # same deadline.

            if future.cancel():
                raise TransportTimeout('%s: timed out waiting in the request queue' % (request_key)) from None

            reply_key, reply_data = future.result()

        return self._decode_reply(request_key, reply_key, reply_data)


    def _deadline(self, timeout):

        if timeout is None:
            timeout = self.timeout

        return time.monotonic() + timeout


    def _ready(self, key, deadline):
        """ Return True if the session is connected. A session still coming
            up is waited for within what remains of *deadline*; anything
            else short of connected is a logged no-op.
        """

        if self.session.state is SessionState.CONNECTING:
            self.session.wait(max(deadline - time.monotonic(), 0))

        return self.session.require(key)


    def _decode_reply(self, request_key, topic, data):

        reply_key = key_of(topic)

        if reply_key == EMPTY_KEY:
            logger.debug('%s: empty reply', request_key)
            return None

        if self.registry.classify(reply_key) is not Channel.REPLY:
            raise UnexpectedReply('%s: reply %r is not a reply message' % (request_key, topic))

        reply = self.registry.decode(reply_key, data)
        logger.debug('%s: %s', request_key, reply_key)
        return reply


    def _exchange(self, request_key, data, deadline):
        """ Body of one queued request: register, send, and wait for the
            reply until *deadline*. Runs on the request queue's worker, the
            only thread that writes to the request transport.
        """

        remaining = deadline - time.monotonic()

        if remaining <= 0:
            raise TransportTimeout('%s: timed out waiting in the request queue' % (request_key))

        pending = PendingRequest(request_key)

        with self.lock:
            self.pending[pending.id] = pending
            self.current = pending

        try:
            self.request_transport.send(pending.id, self.registry.topic(request_key), data)

            if pending.wait(remaining):
                return pending.response

            with self.lock:
                settled = self.pending.pop(pending.id, None) is None

            # The reply won the race for the lock; handle_reply() completes
            # the request before releasing it.

            if settled:
                return pending.response

            self.request_transport.abandon(pending.id)

            elapsed = time.monotonic() - pending.created
            raise TransportTimeout('%s: no reply in %.2f sec' % (request_key, elapsed))

        finally:
            with self.lock:
                self.pending.pop(pending.id, None)
                if self.current is pending:
                    self.current = None


    def handle_reply(self, token, topic, data):
        """ Route one reply from the request transport to its pending
            request. A *token* of None is routed to the request currently
            outstanding. Replies matching nothing are discarded.
        """

        with self.lock:
            if token is None:
                pending = self.current
                if pending is not None:
                    pending = self.pending.pop(pending.id, None)
            else:
                pending = self.pending.pop(token, None)

            if pending is None:
                logger.debug('discarding reply %s (token %s): no matching request', topic, token)
                return

            pending._complete(topic, data)


    def get_telemetry(self, telemetry_key, timeout=None):
        """ Request the most recent value of one telemetry message and
            return it decoded. Returns None, with nothing sent, if the
            session is not connected.
        """

        self._require(telemetry_key, Channel.TELEMETRY)

        deadline = self._deadline(timeout)

        if not self._ready(telemetry_key, deadline):
            return None

        remaining = deadline - time.monotonic()
        reply = self.send_request(TELEMETRY_REQUEST, {'message_type': telemetry_key}, remaining)

        if reply is None:
            raise UnexpectedTelemetryType('%s: empty telemetry reply' % (telemetry_key))

        envelope = Envelope.of(getattr(reply, 'payload', None))

        if envelope is None:
            raise UnexpectedTelemetryType('%s: telemetry reply carries no payload' % (telemetry_key))

        inner_key = envelope.key

        if self.registry.classify(inner_key) is not Channel.TELEMETRY:
            raise UnexpectedTelemetryType('%s: unknown telemetry type %r' % (telemetry_key, envelope.type_url))

        if inner_key != telemetry_key:
            raise UnexpectedTelemetryType('%s: reply carries %s' % (telemetry_key, inner_key))

        return self.registry.decode(inner_key, envelope.value)


    def send_control(self, control_key, args=None):
        """ Send a one-way control message. Returns True if it was handed to
            the transport, False if the session is not connected.
        """

        self._require(control_key, Channel.CONTROL)
        data = self.registry.encode(control_key, args)

        if self.control_transport is None:
            raise TransportNotReady('%s: no control transport configured' % (control_key))

        if not self.session.require(control_key):
            return False

        self.control_transport.publish(self.registry.topic(control_key), data)
        logger.debug('%s: sent', control_key)
        return True


    def close(self):
        self.queue.shutdown(wait=False)


# end of class Engine


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
