""" Decoder for binlog recordings (``.bez`` files): a gzip-compressed
    sequence of length-prefixed ``BinlogRecord`` messages, each wrapping one
    protocol message in an ``Any`` envelope along with the drone's
    monotonic clock and wall clock at the time it was logged.

    The typical entry point is :func:`parse`::

        records = blueye_link.binlog.parse('recording.bez')

    Recordings are frequently cut short mid-write. A truncated final frame,
    or a compressed stream missing its trailer, ends the recording without
    raising; whatever was decoded up to that point is returned. Frames that
    cannot be resolved against the registry are skipped with a warning.
"""

import dataclasses
import datetime
import logging
import os
import struct
import typing
import zlib

from .errors import DecodeError, StreamDecompressionFailure, TruncatedFrame
from .registry import BINLOG_RECORD, Channel, Envelope, Registry, TELEMETRY_REPLY, channel_of

logger = logging.getLogger(__name__)

chunk_size = 65536

_epoch = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_millisecond = datetime.timedelta(milliseconds=1)


@dataclasses.dataclass(frozen=True)
class BinlogRecord:
    """ One decoded entry of a recording. Times are integer milliseconds;
        *inner_data* is only set for telemetry replies, where it holds the
        decoded telemetry message carried inside the reply.
    """

    monotonic_time: int
    wall_time: int
    channel: Channel
    key: str
    data: typing.Any
    inner_data: typing.Any = None


# --- decompression ---

def _chunks(source):

    if isinstance(source, (bytes, bytearray, memoryview)):
        view = memoryview(source)
        for offset in range(0, len(view), chunk_size):
            yield bytes(view[offset:offset + chunk_size])
        return

    if isinstance(source, (str, os.PathLike)):
        with open(source, 'rb') as stream:
            yield from _chunks(stream)
        return

    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        yield chunk


def _inflater():
    # wbits offset by 16 selects the gzip container.
    return zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)


def decompress(source):
    """ Decompress a gzip *source* (bytes, a path, or a binary file object)
        into a single :class:`bytes` buffer. Concatenated gzip members are
        decompressed in sequence.

        Raises :class:`StreamDecompressionFailure` if the data is not valid
        gzip. A stream that simply stops early is not an error: the data
        decompressed so far is returned and a warning is logged.
    """

    inflater = _inflater()
    started = False
    output = bytearray()

    try:
        for chunk in _chunks(source):
            while chunk:
                started = True
                output += inflater.decompress(chunk)

                if inflater.eof:
                    chunk = inflater.unused_data
                    inflater = _inflater()
                    started = False
                else:
                    chunk = b''

        output += inflater.flush()

    except zlib.error as e:
        raise StreamDecompressionFailure('cannot decompress binlog: %s' % (e)) from e

    if started and not inflater.eof:
        logger.warning('compressed stream ends early, keeping %d decompressed bytes', len(output))

    return bytes(output)


# --- framing ---

def _read_varint(buffer, position):

    result = 0
    shift = 0

    # Protobuf varints are at most ten bytes; uint32 readers keep the low
    # 32 bits of whatever was encoded.

    for index in range(10):
        if position + index >= len(buffer):
            return None

        byte = buffer[position + index]
        result |= (byte & 0x7F) << shift
        shift += 7

        if not byte & 0x80:
            return result & 0xFFFFFFFF, position + index + 1

    raise DecodeError('malformed length prefix at offset %d' % (position))


def _fixed_reader(format):

    layout = struct.Struct(format)

    def read(buffer, position):
        end = position + layout.size
        if end > len(buffer):
            return None
        return layout.unpack_from(buffer, position)[0], end

    return read


framings = {
    'varint': _read_varint,
    'uint32le': _fixed_reader('<I'),
    'uint32be': _fixed_reader('>I'),
}


def split_frames(buffer, framing='varint', strict=False):
    """ Yield each length-prefixed frame in *buffer* as :class:`bytes`.
        *framing* names the length prefix: ``varint`` (protobuf delimited,
        as written by the drone), ``uint32le`` or ``uint32be``.

        A prefix or frame running past the end of the buffer stops the
        iteration; with *strict* set it raises :class:`TruncatedFrame`
        instead.
    """

    try:
        read_length = framings[framing]
    except KeyError:
        raise ValueError('unknown binlog framing: ' + repr(framing)) from None

    buffer = memoryview(buffer)
    position = 0
    total = len(buffer)

    while position < total:
        prefix = read_length(buffer, position)

        if prefix is None:
            message = 'truncated length prefix at offset %d' % (position)
        else:
            length, start = prefix
            end = start + length

            if end <= total:
                yield bytes(buffer[start:end])
                position = end
                continue

            message = 'frame at offset %d needs %d bytes, %d remain' % (position, length, total - start)

        if strict:
            raise TruncatedFrame(message)

        logger.warning('binlog truncated: %s', message)
        return


# --- record decoding ---

def _milliseconds(value):
    """ Return *value* as integer milliseconds since the epoch. Accepts a
        protobuf ``Timestamp``, a :class:`datetime.datetime` (as produced by
        proto-plus), or a plain number; absent values are zero.
    """

    if value is None:
        return 0

    if hasattr(value, 'ToMilliseconds'):
        return value.ToMilliseconds()

    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return (value - _epoch) // _millisecond

    return int(value)


def _record_channel(key):

    channel = channel_of(key)

    if channel is Channel.UNKNOWN:
        return Channel.TELEMETRY

    return channel


def _resolve(registry, envelope, what):
    """ Return ``(key, decoded)`` for *envelope*, or None if it cannot be
        resolved against *registry*; the reason is logged.
    """

    if envelope is None:
        logger.warning('skipping frame: %s has no payload', what)
        return None

    key = envelope.key

    if key not in registry:
        logger.warning('skipping frame: unknown %s type %r', what, envelope.type_url)
        return None

    try:
        return key, registry.decode(key, envelope.value)
    except DecodeError as e:
        logger.warning('skipping frame: %s', e)
        return None


def decode_frame(registry, frame):
    """ Decode one frame into a :class:`BinlogRecord`, or return None if the
        frame has to be skipped.
    """

    try:
        outer = registry.decode(BINLOG_RECORD, frame)
    except DecodeError as e:
        logger.warning('skipping frame: %s', e)
        return None

    resolved = _resolve(registry, Envelope.of(getattr(outer, 'payload', None)), 'message')
    if resolved is None:
        return None

    key, data = resolved
    inner_data = None

    if key == TELEMETRY_REPLY:
        inner = _resolve(registry, Envelope.of(getattr(data, 'payload', None)), 'telemetry')
        if inner is None:
            return None

        inner_data = inner[1]

    return BinlogRecord(
        monotonic_time=_milliseconds(getattr(outer, 'clock_monotonic', None)),
        wall_time=_milliseconds(getattr(outer, 'unix_timestamp', None)),
        channel=_record_channel(key),
        key=key,
        data=data,
        inner_data=inner_data,
    )


def reconcile(records):
    """ Re-derive every wall clock time from the monotonic clock, anchored
        on the last record: the monotonic deltas are reliable, while the
        wall clock may have been stepped during the session and only its
        final reading is trusted. Returns a new list.
    """

    if not records:
        return list(records)

    anchor = records[-1]
    anchor_monotonic = anchor.monotonic_time
    anchor_wall = anchor.wall_time

    reconciled = list()

    for record in records:
        delta = anchor_monotonic - record.monotonic_time
        reconciled.append(dataclasses.replace(record, wall_time=anchor_wall - delta))

    return reconciled


def parse_messages(buffer, registry=None, fix_times=True, framing='varint'):
    """ Decode an already decompressed binlog *buffer* into a list of
        :class:`BinlogRecord`, in stream order.
    """

    if registry is None:
        registry = Registry.default()

    records = list()

    try:
        for frame in split_frames(buffer, framing):
            record = decode_frame(registry, frame)
            if record is not None:
                records.append(record)
    except DecodeError as e:
        logger.warning('binlog scan stopped: %s', e)

    logger.debug('decoded %d binlog records', len(records))

    if fix_times:
        records = reconcile(records)

    return records


def parse(source, registry=None, fix_times=True, framing='varint'):
    """ Decompress and decode a binlog. *source* is the raw (gzipped)
        recording as bytes, a path, or a binary file object. If *fix_times*
        is True the wall clock times are reconciled, see :func:`reconcile`.

        Frames are length-delimited with a varint prefix by default, the
        protobuf convention drone recordings are written with. Pass
        *framing* ``uint32le`` or ``uint32be`` for streams using a fixed
        4-byte prefix; see :func:`split_frames`.
    """

    return parse_messages(decompress(source), registry, fix_times, framing)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
