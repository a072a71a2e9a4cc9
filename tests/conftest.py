import os
import sys

import pytest

# The helper modules (unitproto, unittransport) live next to the tests.
sys.path.insert(0, os.path.dirname(__file__))

import unitproto
import unittransport

from blueye_link.engine import Engine
from blueye_link.registry import Registry
from blueye_link.session import Session


@pytest.fixture
def registry():
    return Registry(unitproto)


@pytest.fixture
def request_transport():
    return unittransport.MemoryRequest()


@pytest.fixture
def control_transport():
    return unittransport.MemoryControl()


@pytest.fixture
def session(request_transport, control_transport):
    return Session((request_transport, control_transport))


@pytest.fixture
def engine(registry, session, request_transport, control_transport):
    session.connect()
    engine = Engine(registry, session, request_transport, control_transport, timeout=1.0)

    yield engine

    engine.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
