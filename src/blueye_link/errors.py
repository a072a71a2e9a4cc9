""" Exceptions raised by the registry adapter, the RPC engine and the
    binlog decoder. Transport-level exceptions live alongside the transport
    contract in :mod:`blueye_link.transport.base`.
"""


class LinkError(Exception):
    """ Base class for all non-transport errors raised by this package.
    """


class UnknownType(LinkError, KeyError):
    """ The message key is not present in the registry.
    """

    def __str__(self):
        # KeyError would otherwise repr() the message.
        return Exception.__str__(self)


class InvalidChannel(LinkError, ValueError):
    """ The message key exists, but its suffix does not match the channel
        required by the attempted operation.
    """


class DecodeError(LinkError, ValueError):
    """ The bytes could not be parsed as the requested message type.
    """


class UnexpectedReply(LinkError):
    """ A reply arrived, but it is not a reply-channel message.
    """


class UnexpectedTelemetryType(LinkError):
    """ A telemetry reply carried an envelope that does not resolve to the
        requested telemetry type.
    """


class StreamDecompressionFailure(LinkError):
    """ A binlog could not be decompressed. This is fatal for the whole
        stream.
    """


class TruncatedFrame(LinkError):
    """ A binlog frame declares more bytes than remain in the stream. By default the
        decoder treats this as the end of the recording; it is only raised
        when frames are split with *strict* enabled.
    """


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
