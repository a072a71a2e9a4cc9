''' Wrapper module around :mod:`orjson` providing the equivalent of
    :func:`json.loads` and :func:`json.dumps`. Both the WebSocket framing
    and the command line tool go through here so that there is exactly
    one place deciding how bytes, timestamps and messages become JSON.
'''

import base64

import orjson


def _default(thing):
    ''' Fallback serializer for the handful of types orjson does not
        handle natively. Raw bytes are rendered as base64, matching how
        the WebSocket transport carries encoded messages.
    '''

    if isinstance(thing, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(thing)).decode('ascii')

    if isinstance(thing, (set, frozenset)):
        return sorted(thing)

    raise TypeError('type is not JSON serializable: ' + type(thing).__name__)


# The orjson 'dumps' operation returns bytes. All callers are expected to
# handle bytes, decoding to str only where a text frame is required.

def dumps(thing):
    return orjson.dumps(thing, default=_default)


loads = orjson.loads

JSONDecodeError = orjson.JSONDecodeError


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
