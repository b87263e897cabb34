import json

import pytest
from starlette.websockets import WebSocketState

from sellgadgetz.sockets.broadcaster import Broadcaster, LocalBroadcaster, RedisBroadcaster, build_broadcaster
from sellgadgetz.sockets.registry import ConnectionRegistry

class FakeWebSocket:
    def __init__(self, state=WebSocketState.CONNECTED, fail=False):
        self.client_state = state
        self.application_state = state
        self.fail = fail
        self.sent = []

    async def send_json(self, payload):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(payload)

class FakeRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, data):
        self.published.append((channel, data))

def test_registry_drops_empty_user_sets():
    registry = ConnectionRegistry()
    tab1, tab2 = FakeWebSocket(), FakeWebSocket()

    registry.register(1, tab1)
    registry.register(1, tab2)
    assert registry.connection_count() == 2

    registry.unregister(1, tab1)
    assert registry.connections_for(1) == [tab2]

    registry.unregister(1, tab2)
    assert registry.connected_user_ids() == []
    assert registry.connections_for(1) == []

    # unknown user or socket is a no-op
    registry.unregister(42, tab1)

async def test_local_broadcaster_skips_closed_and_failing_sockets():
    registry = ConnectionRegistry()
    open_ws = FakeWebSocket()
    closed_ws = FakeWebSocket(state=WebSocketState.DISCONNECTED)
    broken_ws = FakeWebSocket(fail=True)
    other_ws = FakeWebSocket()
    registry.register(1, open_ws)
    registry.register(1, closed_ws)
    registry.register(2, broken_ws)
    registry.register(3, other_ws)

    broadcaster = LocalBroadcaster(registry)
    payload = {"id": 1, "roomId": 7, "message": "hello"}
    delivered = await broadcaster.deliver_local([1, 2, 1, 99], payload)

    assert delivered == 1
    assert open_ws.sent == [payload]
    assert closed_ws.sent == []
    assert other_ws.sent == []  # not a participant

async def test_redis_broadcaster_publishes_envelope():
    registry = ConnectionRegistry()
    redis_client = FakeRedis()
    broadcaster = RedisBroadcaster(registry, client=redis_client, channel="test:chat")

    await broadcaster.publish([1, 2, 2], {"id": 5})

    channel, data = redis_client.published[0]
    assert channel == "test:chat"
    assert json.loads(data) == {"user_ids": [1, 2], "payload": {"id": 5}}

async def test_redis_envelope_is_delivered_locally():
    registry = ConnectionRegistry()
    ws = FakeWebSocket()
    registry.register(2, ws)
    broadcaster = RedisBroadcaster(registry, client=FakeRedis())

    delivered = await broadcaster.handle_envelope(json.dumps({"user_ids": [1, 2], "payload": {"id": 5}}))
    assert delivered == 1
    assert ws.sent == [{"id": 5}]

    assert await broadcaster.handle_envelope("{broken") == 0
    assert await broadcaster.handle_envelope(json.dumps({"payload": {}})) == 0

def test_build_broadcaster_selects_implementation():
    registry = ConnectionRegistry()
    assert isinstance(build_broadcaster(registry, "memory"), LocalBroadcaster)
    assert isinstance(build_broadcaster(registry, "redis"), RedisBroadcaster)
    assert isinstance(build_broadcaster(registry, "unknown"), LocalBroadcaster)

def test_broadcaster_port_is_abstract():
    with pytest.raises(TypeError):
        Broadcaster(ConnectionRegistry())
