import json

import pytest

from insta_relay.events import MessageCreate
from insta_relay.memory.cache import EntityStore
from insta_relay.sync.reconciler import PatchReconciler
from insta_relay.sync.replay import ReplayBuffer
from insta_relay.sync.router import ChangeRouter


@pytest.mark.asyncio
async def test_offers_are_queued_until_ready_and_replayed_in_order():
    buffer = ReplayBuffer()
    seen = []

    async def dispatch(source, *args):
        seen.append((source, args))

    assert buffer.offer("realtime", "146", "a") is True
    assert buffer.offer("push", {"pushCategory": "x"}) is True
    assert buffer.offer("realtime", "146", "b") is True
    assert len(buffer) == 3

    buffer.mark_ready()
    assert buffer.offer("realtime", "146", "late") is False

    assert await buffer.drain(dispatch) == 3
    assert seen == [
        ("realtime", ("146", "a")),
        ("push", ({"pushCategory": "x"},)),
        ("realtime", ("146", "b")),
    ]


@pytest.mark.asyncio
async def test_drain_happens_once():
    buffer = ReplayBuffer()
    seen = []

    async def dispatch(source, *args):
        seen.append(source)

    buffer.offer("push", {})
    buffer.mark_ready()

    assert await buffer.drain(dispatch) == 1
    assert await buffer.drain(dispatch) == 0
    assert buffer.offer("push", {}) is False
    assert len(buffer) == 0
    assert seen == ["push"]


@pytest.mark.asyncio
async def test_drain_before_ready_is_an_error():
    buffer = ReplayBuffer()

    with pytest.raises(RuntimeError):
        await buffer.drain(lambda *_: None)


@pytest.mark.asyncio
async def test_failing_entry_does_not_stop_replay():
    buffer = ReplayBuffer()
    seen = []

    async def dispatch(source, *args):
        if args[0] == "bad":
            raise RuntimeError("boom")
        seen.append(args[0])

    for arg in ("one", "bad", "two"):
        buffer.offer("push", arg)
    buffer.mark_ready()

    assert await buffer.drain(dispatch) == 3
    assert seen == ["one", "two"]


class _Fetcher:
    def __init__(self, store):
        self.store = store

    async def fetch_chat(self, chat_id):
        return self.store.get_or_create("chat", chat_id, {"users": [{"pk": "1", "username": "one"}]})

    async def fetch_user(self, query):
        return self.store.get_or_create("user", query, {"username": query})

    async def fetch_pending_threads(self):
        return []


def _add(item_id, timestamp):
    item = {"item_id": item_id, "user_id": "1", "timestamp": timestamp, "item_type": "text", "text": item_id}
    record = {"op": "add", "path": f"/direct_v2/threads/9/items/{item_id}", "value": json.dumps(item)}
    return json.dumps([{"data": [record]}])


async def _events_for(store, bus, recorded, *, buffered):
    fetcher = _Fetcher(store)
    router = ChangeRouter(store, PatchReconciler(store, bus, fetcher.fetch_user), bus, fetcher, watermark=0)
    buffer = ReplayBuffer()
    deliveries = [_add("101", 10), _add("102", 20), _add("101", 10)]

    if not buffered:
        buffer.mark_ready()
    for payload in deliveries:
        if not buffer.offer("realtime", "146", payload):
            await router.handle_realtime("146", payload)

    if buffered:
        assert recorded == []
        buffer.mark_ready()
        await buffer.drain(lambda _source, *args: router.handle_realtime(*args))

    return [(type(e), e.message.id) for e in recorded]


@pytest.mark.asyncio
async def test_buffered_deliveries_produce_same_events_as_direct_ones(bus, recorded):
    direct = await _events_for(EntityStore(), bus, recorded, buffered=False)
    recorded.clear()
    replayed = await _events_for(EntityStore(), bus, recorded, buffered=True)

    assert direct == replayed == [(MessageCreate, "101"), (MessageCreate, "102")]
