import base64
import threading
import time

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve

import unitproto

from blueye_link import json
from blueye_link.engine import Engine
from blueye_link.session import Session
from blueye_link.transport import TransportConnectionError, TransportNotReady, TransportTimeout
from blueye_link.transport.websocket import framing, publish, request


def test_encode():

    frame = json.loads(framing.encode('blueye.protocol.GetBatteryReq', b'\x00\x01', 'abc'))
    assert frame == {'id': 'abc', 'key': 'blueye.protocol.GetBatteryReq', 'data': 'AAE='}

    frame = json.loads(framing.encode('blueye.protocol.DepthTel', b''))
    assert 'id' not in frame
    assert frame['data'] == ''


def test_decode():

    token, topic, data = framing.decode('{"id": 7, "key": "blueye.protocol.DepthTel", "data": "AAE="}')
    assert token == '7'
    assert topic == 'blueye.protocol.DepthTel'
    assert data == b'\x00\x01'

    token, topic, data = framing.decode(b'{"key": "blueye.protocol.Empty"}')
    assert token is None
    assert data == b''


@pytest.mark.parametrize('frame', [
    'not json',
    '[1, 2, 3]',
    '{"data": "AAE="}',
    '{"key": "", "data": "AAE="}',
    '{"key": "blueye.protocol.DepthTel", "data": "%%%"}',
])
def test_decode_malformed(frame):

    with pytest.raises(ValueError):
        framing.decode(frame)


class Gateway:
    """ Minimal WebSocket gateway. Request frames are answered with a
        GetBatteryRep; with *echo* False the reply omits the request id.
        Every text frame received is kept in *received*; *delays* holds
        per-request delays in seconds.
    """

    def __init__(self, echo=True, delays=()):

        self.echo = echo
        self.delays = list(delays)
        self.received = list()
        self.connections = list()

        self.server = serve(self.handle, 'localhost', 0)
        self.port = self.server.socket.getsockname()[1]

        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()


    @property
    def url(self):
        return 'ws://localhost:%d' % (self.port,)


    def handle(self, connection):

        self.connections.append(connection)

        for frame in connection:
            self.received.append(frame)
            token, topic, data = framing.decode(frame)

            if not topic.endswith('Req'):
                continue

            if self.delays:
                time.sleep(self.delays.pop(0))

            reply = unitproto.GetBatteryRep(battery={'level': len(self.received)})
            data = unitproto.GetBatteryRep.serialize(reply)

            try:
                connection.send(framing.encode('blueye.protocol.GetBatteryRep', data, token if self.echo else None))
            except ConnectionClosed:
                return


    def publish(self, topic, data):
        for connection in self.connections:
            connection.send(framing.encode(topic, data))


    def stop(self):
        self.server.shutdown()
        self.thread.join()


@pytest.mark.parametrize('echo', [True, False])
def test_request(registry, echo):

    gateway = Gateway(echo)
    transport = request.Client(gateway.url)
    session = Session((transport,))
    engine = Engine(registry, session, transport, timeout=5)

    try:
        assert session.connect()

        assert engine.send_request('GetBatteryReq', {'tag': 1}).battery == {'level': 1}
        assert engine.send_request('GetBatteryReq', {'tag': 2}).battery == {'level': 2}

        sent = json.loads(gateway.received[0])
        assert sent['key'] == 'blueye.protocol.GetBatteryReq'
        assert 'id' in sent
        assert unitproto.GetBatteryReq.deserialize(base64.b64decode(sent['data'])).tag == 1
    finally:
        session.disconnect()
        engine.close()
        gateway.stop()

def test_request_timeout_reconnects(registry):
    """ The gateway does not echo request ids, so the reply to a timed out
        request would pass for the answer to the next one; abandoning the
        request drops the connection it would arrive on.
    """

    gateway = Gateway(echo=False, delays=[0.4])
    transport = request.Client(gateway.url)
    session = Session((transport,))
    engine = Engine(registry, session, transport, timeout=5)

    try:
        assert session.connect()

        with pytest.raises(TransportTimeout):
            engine.send_request('GetBatteryReq', timeout=0.1)

        assert transport.is_open

        reply = engine.send_request('GetBatteryReq')
        assert reply.battery == {'level': 2}
        assert len(gateway.connections) == 2
    finally:
        session.disconnect()
        engine.close()
        gateway.stop()



def test_telemetry_and_control():

    gateway = Gateway()
    client = publish.Client(gateway.url)

    received = list()
    arrived = threading.Event()

    def on_message(topic, data):
        received.append((topic, data))
        arrived.set()

    client.on_message = on_message
    client.open()

    try:
        client.publish('blueye.protocol.MotionInputCtrl', b'\x05')

        # The gateway has seen the connection once the control frame lands.

        for attempt in range(100):
            if gateway.received:
                break
            arrived.wait(0.05)

        assert json.loads(gateway.received[0])['key'] == 'blueye.protocol.MotionInputCtrl'

        gateway.publish('blueye.protocol.DepthTel', b'\x01\x02')
        assert arrived.wait(5)
        assert received == [('blueye.protocol.DepthTel', b'\x01\x02')]
    finally:
        client.close()
        gateway.stop()

    assert not client.is_open

    with pytest.raises(TransportNotReady):
        client.publish('blueye.protocol.MotionInputCtrl', b'')


def test_refused():

    gateway = Gateway()
    url = gateway.url
    gateway.stop()

    client = request.Client(url)
    client.open_timeout = 1

    with pytest.raises(TransportConnectionError):
        client.open()

    assert not client.is_open


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
