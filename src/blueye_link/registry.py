""" Adapter over the externally supplied message registry. The registry
    itself (by default the :mod:`blueye.protocol` package) is a namespace of
    generated message classes; this module reduces it to a closed table of
    known keys, a total :func:`Registry.classify` function, and
    encode/decode helpers that translate the underlying library's failures
    into :mod:`blueye_link.errors` exceptions.

    Both proto-plus classes (``serialize``/``deserialize``, as generated for
    :mod:`blueye.protocol`) and plain protobuf classes
    (``SerializeToString``/``FromString``) are accepted.
"""

import enum

from . import config
from .errors import DecodeError, UnknownType


class Channel(enum.Enum):
    """ The four message categories, plus the explicit *UNKNOWN* variant
        returned for anything that is not a registry key.
    """

    REQUEST = 'Req'
    REPLY = 'Rep'
    TELEMETRY = 'Tel'
    CONTROL = 'Ctrl'
    UNKNOWN = None


_suffixes = (Channel.CONTROL, Channel.REPLY, Channel.REQUEST, Channel.TELEMETRY)


# Keys with a special meaning to the RPC engine and the binlog decoder.

EMPTY_KEY = 'Empty'
TELEMETRY_REQUEST = 'GetTelemetryReq'
TELEMETRY_REPLY = 'GetTelemetryRep'
BINLOG_RECORD = 'BinlogRecord'


def channel_of(key):
    """ Return the :class:`Channel` implied by the suffix of *key*, without
        consulting any registry.
    """

    for channel in _suffixes:
        if key.endswith(channel.value):
            return channel

    return Channel.UNKNOWN


def key_of(name):
    """ Return the message key from a topic (``blueye.protocol.BatteryTel``)
        or a type URL (``type.googleapis.com/blueye.protocol.BatteryTel``).
        The key is always the last dot-separated component.
    """

    if isinstance(name, (bytes, bytearray)):
        name = bytes(name).decode('ascii', errors='replace')

    name = name.rsplit('.', 1)[-1]
    return name.rsplit('/', 1)[-1]


def _is_message_class(thing):

    if not isinstance(thing, type):
        return False

    if hasattr(thing, 'deserialize') and hasattr(thing, 'serialize'):
        return True

    if hasattr(thing, 'FromString') and hasattr(thing, 'SerializeToString'):
        return True

    return False


class Envelope:
    """ A self-describing wrapper carrying one encoded message inside
        another: the *type_url* names the message type, *value* holds its
        encoded bytes.
    """

    __slots__ = ('type_url', 'value')

    def __init__(self, type_url, value=b''):
        self.type_url = type_url
        self.value = bytes(value or b'')


    def __repr__(self):
        return 'Envelope(%r, <%d bytes>)' % (self.type_url, len(self.value))


    def __eq__(self, other):
        if not isinstance(other, Envelope):
            return NotImplemented
        return self.type_url == other.type_url and self.value == other.value


    @property
    def key(self):
        return key_of(self.type_url)


    @classmethod
    def of(cls, thing):
        """ Build an :class:`Envelope` from a protobuf ``Any``, or any object
            with ``type_url`` (or ``typeUrl``) and ``value`` attributes.
            Returns None if *thing* is None or carries no type.
        """

        if thing is None:
            return None

        if isinstance(thing, Envelope):
            return thing

        type_url = getattr(thing, 'type_url', None)
        if type_url is None:
            type_url = getattr(thing, 'typeUrl', None)

        if not type_url:
            return None

        return cls(type_url, getattr(thing, 'value', b''))


# end of class Envelope



class Registry:
    """ Pure, read-only view of a message registry. *source* is any object
        whose attributes are message classes, typically a module; *namespace*
        is the protobuf package name used to build wire topics.

        The set of known keys is captured once, at construction time.
    """

    def __init__(self, source, namespace=None):

        if namespace is None:
            namespace = config.default_namespace

        classes = dict()

        for name in dir(source):
            if name.startswith('_'):
                continue

            thing = getattr(source, name, None)
            if _is_message_class(thing):
                classes[name] = thing

        self.namespace = namespace
        self._classes = classes
        self.keys = frozenset(classes)


    @classmethod
    def default(cls, namespace=None):
        """ Return a :class:`Registry` over the :mod:`blueye.protocol`
            message definitions.
        """

        import blueye.protocol
        return cls(blueye.protocol, namespace)


    def __contains__(self, key):
        return key in self.keys


    def classify(self, key):
        """ Return the :class:`Channel` for *key*. Keys absent from the
            registry, or present but lacking one of the four channel
            suffixes, classify as :attr:`Channel.UNKNOWN`.
        """

        if key not in self.keys:
            return Channel.UNKNOWN

        return channel_of(key)


    def lookup(self, key):
        try:
            return self._classes[key]
        except KeyError:
            raise UnknownType('unknown message type: ' + repr(key)) from None


    def encode(self, key, value=None):
        """ Encode *value* as message type *key*. The *value* can be an
            instance of the message class, a dictionary of field values, or
            None for a default message.
        """

        message_class = self.lookup(key)

        if isinstance(value, message_class):
            message = value
        elif value is None:
            message = message_class()
        else:
            message = message_class(**value)

        if hasattr(message_class, 'serialize'):
            return bytes(message_class.serialize(message))
        else:
            return message.SerializeToString()


    def decode(self, key, data):
        """ Decode *data* as message type *key*.
        """

        message_class = self.lookup(key)

        try:
            if hasattr(message_class, 'deserialize'):
                return message_class.deserialize(bytes(data))
            else:
                return message_class.FromString(bytes(data))
        except Exception as e:
            raise DecodeError('%s: cannot decode %d bytes: %s' % (key, len(data), e)) from e


    def topic(self, key):
        """ Return the fully qualified name used on the wire for *key*.
        """

        return self.namespace + '.' + key


    def to_dict(self, message):
        """ Return a plain-data rendition of a decoded *message*, suitable
            for JSON output.
        """

        if message is None:
            return None

        message_class = type(message)

        if hasattr(message_class, 'to_dict'):
            return message_class.to_dict(message)

        if hasattr(message, 'DESCRIPTOR'):
            from google.protobuf import json_format
            return json_format.MessageToDict(message)

        return dict(vars(message))


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
