import json

import pytest

from main import create_app
from relay.config import Settings
from relay.hub import ConnectionHub
from relay.router import EventRouter
from relay.state import ChatState


class FakeSocket:
    """Collects frames sent by the hub"""

    def __init__(self, broken=False):
        self.frames = []
        self.broken = broken

    async def send_str(self, data):
        if self.broken:
            raise ConnectionResetError("Cannot write to closing transport")
        self.frames.append(json.loads(data))

    def events(self, name=None):
        return [f for f in self.frames if name is None or f["event"] == name]

    def clear(self):
        self.frames.clear()


@pytest.fixture
def state():
    return ChatState()


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def router(state, hub):
    return EventRouter(state, hub)


@pytest.fixture
def evicting_router(state, hub):
    return EventRouter(state, hub, evict_on_disconnect=True)


@pytest.fixture
def connect():
    """Attach a fake socket to a router and return (connection, socket)"""

    def _connect(router, broken=False):
        ws = FakeSocket(broken=broken)
        return router.connect(ws), ws

    return _connect


@pytest.fixture
def app_settings():
    return Settings(cors_origin="http://localhost:3000")


@pytest.fixture
async def client(aiohttp_client, app_settings):
    return await aiohttp_client(create_app(app_settings))
