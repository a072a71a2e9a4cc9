import logging

import unittransport

from blueye_link.session import Session, SessionState


def test_connect_once():

    transport = unittransport.MemoryRequest()
    session = Session((transport,))

    states = list()
    session.observe(states.append)

    assert session.state is SessionState.DISCONNECTED
    assert session.connect() is True
    assert session.connect() is False

    assert transport.opened == 1
    assert session.state is SessionState.CONNECTED
    assert states == [SessionState.CONNECTING, SessionState.CONNECTED]
    assert session.ready()
    assert session.wait(0)


def test_disconnect_once():

    transport = unittransport.MemoryRequest()
    session = Session((transport,))

    # Disconnecting before ever connecting is a no-op.

    assert session.disconnect() is False
    assert transport.closed == 0

    session.connect()
    assert session.disconnect() is True
    assert session.disconnect() is False

    assert transport.closed == 1
    assert session.state is SessionState.DISCONNECTED
    assert not session.wait(0)


def test_disconnect_while_connecting(caplog):
    """ An observer reacting to CONNECTING by disconnecting must not be able
        to tear the transports down mid-attach.
    """

    transport = unittransport.MemoryRequest()
    session = Session((transport,))

    seen = list()

    def observer(state):
        if state is SessionState.CONNECTING:
            seen.append(session.disconnect())
            seen.append(session.state)

    session.observe(observer)

    with caplog.at_level(logging.ERROR):
        session.connect()

    assert seen == [False, SessionState.CONNECTING]
    assert transport.closed == 0
    assert session.state is SessionState.CONNECTED
    assert 'refused' in caplog.text


def test_connect_while_connecting():

    transport = unittransport.MemoryRequest()
    session = Session((transport,))

    results = list()

    def observer(state):
        if state is SessionState.CONNECTING:
            results.append(session.connect())

    session.observe(observer)
    session.connect()

    assert results == [False]
    assert transport.opened == 1


def test_failed_attach():

    first = unittransport.MemoryRequest()
    second = unittransport.MemoryControl()
    second.fail_open = True

    session = Session((first, second))
    states = list()
    session.observe(states.append)

    assert session.connect() is False
    assert session.state is SessionState.DISCONNECTED
    assert first.opened == 1
    assert first.closed == 1
    assert states == [SessionState.CONNECTING, SessionState.DISCONNECTED]

    # A later attempt is allowed.

    second.fail_open = False
    assert session.connect() is True


def test_shared_transport():
    """ One transport serving two roles is attached and detached once.
    """

    shared = unittransport.MemorySubscribe()
    session = Session((unittransport.MemoryRequest(), shared, shared))

    session.connect()
    session.disconnect()

    assert shared.opened == 1
    assert shared.closed == 1


def test_observer_failure():

    session = Session((unittransport.MemoryRequest(),))
    states = list()

    def broken(state):
        raise RuntimeError('broken observer')

    session.observe(broken)
    session.observe(states.append)

    session.connect()
    assert states == [SessionState.CONNECTING, SessionState.CONNECTED]


def test_require(caplog):

    session = Session((unittransport.MemoryRequest(),))

    with caplog.at_level(logging.WARNING):
        assert session.require('GetBatteryReq') is False

    assert 'GetBatteryReq' in caplog.text

    session.connect()
    assert session.require('GetBatteryReq') is True


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
