""" A miniature message registry used in place of :mod:`blueye.protocol`.
    The classes follow the proto-plus calling convention (``serialize`` and
    ``deserialize`` class methods, keyword construction, ``to_dict``) but
    encode themselves as JSON so that tests can construct arbitrary bytes
    without a protobuf toolchain.
"""

import base64
import datetime
import gzip
import struct

from blueye_link import json
from blueye_link.registry import Envelope

_epoch = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_millisecond = datetime.timedelta(milliseconds=1)


class _Message:

    fields = ()
    envelopes = ()
    timestamps = ()

    def __init__(self, **kwargs):

        for name in self.fields:
            setattr(self, name, kwargs.pop(name, None))

        if kwargs:
            raise TypeError('unknown fields: ' + ', '.join(sorted(kwargs)))


    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return vars(self) == vars(other)


    def __repr__(self):
        return '%s(%r)' % (type(self).__name__, vars(self))


    @classmethod
    def to_dict(cls, message):

        result = dict()

        for name in cls.fields:
            value = getattr(message, name)

            if value is not None and name in cls.envelopes:
                value = {'type_url': value.type_url,
                         'value': base64.b64encode(value.value).decode('ascii')}
            elif value is not None and name in cls.timestamps:
                value = (value - _epoch) // _millisecond

            result[name] = value

        return result


    @classmethod
    def serialize(cls, message):
        return json.dumps(cls.to_dict(message))


    @classmethod
    def deserialize(cls, data):

        try:
            fields = json.loads(data)
        except json.JSONDecodeError as e:
            raise ValueError('not a %s: %s' % (cls.__name__, e)) from e

        if not isinstance(fields, dict):
            raise ValueError('not a ' + cls.__name__)

        kwargs = dict()

        for name in cls.fields:
            value = fields.get(name)

            if value is not None and name in cls.envelopes:
                value = Envelope(value['type_url'], base64.b64decode(value['value']))
            elif value is not None and name in cls.timestamps:
                value = _epoch + datetime.timedelta(milliseconds=value)

            kwargs[name] = value

        return cls(**kwargs)


class Battery(_Message):
    fields = ('level', 'voltage')

class GetBatteryReq(_Message):
    fields = ('tag',)

class GetBatteryRep(_Message):
    fields = ('battery',)

class BatteryTel(_Message):
    fields = ('battery',)

class DepthTel(_Message):
    fields = ('depth',)

class GetTelemetryReq(_Message):
    fields = ('message_type',)

class GetTelemetryRep(_Message):
    fields = ('payload',)
    envelopes = ('payload',)

class MotionInputCtrl(_Message):
    fields = ('surge', 'sway', 'heave', 'yaw')

class SetLightsReq(_Message):
    fields = ('intensity',)

class BinlogRecord(_Message):
    fields = ('payload', 'unix_timestamp', 'clock_monotonic')
    envelopes = ('payload',)
    timestamps = ('unix_timestamp', 'clock_monotonic')


# --- helpers for building wire data ---

def type_url(key):
    return 'type.googleapis.com/blueye.protocol.' + key


def envelope(message):
    message_class = type(message)
    return Envelope(type_url(message_class.__name__), message_class.serialize(message))


def at(milliseconds):
    return _epoch + datetime.timedelta(milliseconds=milliseconds)


def record(message, monotonic, wall, payload=None):
    """ Return the encoded bytes of a BinlogRecord wrapping *message*. An
        explicit *payload* envelope replaces the one built from *message*.
    """

    if payload is None:
        payload = envelope(message)

    wrapped = BinlogRecord(payload=payload, unix_timestamp=at(wall), clock_monotonic=at(monotonic))
    return BinlogRecord.serialize(wrapped)


def varint(value):

    encoded = bytearray()

    while True:
        byte = value & 0x7F
        value >>= 7

        if value:
            encoded.append(byte | 0x80)
        else:
            encoded.append(byte)
            return bytes(encoded)


def delimited(frames, framing='varint'):

    body = bytearray()

    for frame in frames:
        if framing == 'varint':
            body += varint(len(frame))
        elif framing == 'uint32le':
            body += struct.pack('<I', len(frame))
        else:
            body += struct.pack('>I', len(frame))

        body += frame

    return bytes(body)


def binlog(frames, framing='varint'):
    return gzip.compress(delimited(frames, framing))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
