import asyncio
import json
from types import SimpleNamespace

import pytest
from starlette.websockets import WebSocketDisconnect

from overlaykit.services.realtime import RealtimeHub, topic_for


def test_socket_without_overlay_id_is_closed(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws") as ws:
            ws.receive_text()
    assert exc_info.value.code == 1008


def test_subscriber_receives_snapshot_after_write(client, owner, create_overlay):
    overlay = create_overlay(owner)

    with client.websocket_connect(f"/ws?overlayId={overlay['id']}") as ws:
        response = client.post(
            f"/api/overlays/{overlay['id']}/elements",
            json={"name": "Clock", "type": "TIMER"},
            headers=owner.headers,
        )
        assert response.status_code == 201

        snapshot = ws.receive_json()
        assert snapshot["id"] == overlay["id"]
        assert snapshot["userId"] == owner.id
        assert {e["name"] for e in snapshot["elements"]} == {"Headline", "Clock"}


def test_snapshot_follows_overlay_patch(client, owner, create_overlay):
    overlay = create_overlay(owner)

    with client.websocket_connect(f"/ws?overlayId={overlay['id']}") as ws:
        client.patch(
            f"/api/overlays/{overlay['id']}",
            json={"globalStyle": {"background": "#000"}},
            headers=owner.headers,
        )
        assert ws.receive_json()["globalStyle"] == {"background": "#000"}


def test_live_values_are_relayed_to_other_subscribers_only(client, owner, create_overlay):
    overlay = create_overlay(owner)
    url = f"/ws?overlayId={overlay['id']}"

    with client.websocket_connect(url) as sender, client.websocket_connect(url) as listener:
        sender.send_text("definitely not json")
        sender.send_json({"key": "el-1.fontSize"})
        sender.send_json({"key": "el-1.fontSize", "value": 42})

        assert listener.receive_json() == {"key": "el-1.fontSize", "value": 42}

        # The sender's next frame is the snapshot, not its own echo
        client.patch(f"/api/overlays/{overlay['id']}", json={"name": "Live"}, headers=owner.headers)
        assert sender.receive_json()["name"] == "Live"
        assert listener.receive_json()["name"] == "Live"


def test_live_values_stay_within_their_overlay(client, owner, create_overlay):
    first = create_overlay(owner)
    second = create_overlay(owner)

    with client.websocket_connect(f"/ws?overlayId={first['id']}") as sender, client.websocket_connect(
        f"/ws?overlayId={second['id']}"
    ) as elsewhere:
        sender.send_json({"key": "el-1.opacity", "value": 0.5})
        client.patch(f"/api/overlays/{second['id']}", json={"name": "Second"}, headers=owner.headers)
        assert elsewhere.receive_json()["name"] == "Second"


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, message):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(message)


def test_failed_send_drops_the_subscriber():
    hub = RealtimeHub()
    topic = topic_for("o-1")
    healthy, broken = FakeSocket(), FakeSocket(fail=True)

    async def scenario():
        await hub.connect(topic, healthy)
        await hub.connect(topic, broken)
        first = await hub.publish(topic, json.dumps({"n": 1}))
        second = await hub.publish(topic, json.dumps({"n": 2}))
        return first, second

    first, second = asyncio.run(scenario())

    assert (first, second) == (1, 1)
    assert healthy.sent == ['{"n": 1}', '{"n": 2}']
    assert hub.subscriber_count(topic) == 1


def test_publish_skips_excluded_socket():
    hub = RealtimeHub()
    topic = topic_for("o-1")
    a, b = FakeSocket(), FakeSocket()

    async def scenario():
        await hub.connect(topic, a)
        await hub.connect(topic, b)
        return await hub.publish(topic, "hello", exclude=a)

    assert asyncio.run(scenario()) == 1
    assert a.sent == []
    assert b.sent == ["hello"]
    assert a.accepted and b.accepted


def test_publish_to_empty_topic():
    hub = RealtimeHub()
    assert asyncio.run(hub.publish(topic_for("nobody"), "x")) == 0


class GatedSocket(FakeSocket):
    """Blocks in ``send_text`` until the gate opens."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def send_text(self, message):
        await self.gate.wait()
        self.sent.append(message)


class NotifyingSocket(FakeSocket):
    def __init__(self):
        super().__init__()
        self.received = asyncio.Event()

    async def send_text(self, message):
        self.sent.append(message)
        self.received.set()


class SnapshotRepository:
    def find_overlay(self, overlay_id):
        return SimpleNamespace(
            id=overlay_id, name="Live", description=None, global_style={}, user_id="u-1"
        )

    def find_elements_by_overlay(self, overlay_id):
        return []


def test_broadcast_does_not_wait_for_slow_subscribers():
    hub = RealtimeHub()
    topic = topic_for("o-1")
    slow, fast = GatedSocket(), NotifyingSocket()

    async def scenario():
        await hub.connect(topic, slow)
        await hub.connect(topic, fast)

        snapshot = await hub.broadcast_overlay(SnapshotRepository(), "o-1")
        assert snapshot.name == "Live"
        assert slow.sent == []

        # The fast subscriber is served while the slow one is still blocked
        await asyncio.wait_for(fast.received.wait(), timeout=1)
        assert slow.sent == []

        slow.gate.set()
        await hub.drain()

    asyncio.run(scenario())

    assert json.loads(fast.sent[0])["name"] == "Live"
    assert slow.sent == fast.sent
    assert hub.subscriber_count(topic) == 2


def test_send_timeout_drops_stuck_subscriber():
    hub = RealtimeHub(send_timeout=0.01)
    topic = topic_for("o-1")
    stuck, healthy = GatedSocket(), FakeSocket()

    async def scenario():
        await hub.connect(topic, stuck)
        await hub.connect(topic, healthy)
        return await hub.publish(topic, "hello")

    assert asyncio.run(scenario()) == 1
    assert healthy.sent == ["hello"]
    assert hub.subscriber_count(topic) == 1


def test_binary_frames_are_decoded_and_garbage_dropped(client, owner, create_overlay):
    overlay = create_overlay(owner)
    url = f"/ws?overlayId={overlay['id']}"

    with client.websocket_connect(url) as sender, client.websocket_connect(url) as listener:
        sender.send_bytes(b"\xff\xfe not utf-8")
        sender.send_bytes(b'{"key":"el-1.fontSize","value":1}')
        sender.send_json({"key": "el-1.fontSize", "value": 2})

        assert listener.receive_json() == {"key": "el-1.fontSize", "value": 1}
        assert listener.receive_json() == {"key": "el-1.fontSize", "value": 2}
