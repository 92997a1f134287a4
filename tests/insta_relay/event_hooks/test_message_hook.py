from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from insta_relay.clients.errors import FetchError
from insta_relay.event_hooks import message_hook
from insta_relay.events import MessageCreate
from insta_relay.memory.cache import Message


def _message(author="7"):
    return Message.from_payload("55", {"item_id": "m1", "user_id": author, "timestamp": 1, "text": "hey"})


def _client(store, own_id="100"):
    store.get_or_create("user", own_id, {"username": "relay_bot"})
    return SimpleNamespace(
        user=store.get("user", own_id),
        store=store,
        mark_seen=AsyncMock(),
    )


@pytest.mark.asyncio
async def test_forwards_message_from_cached_sender(store):
    client = _client(store)
    sender = store.get_or_create("user", "7", {"username": "alice"})
    forwarder = SimpleNamespace(forward_message=AsyncMock(return_value=True))
    supervisor = MagicMock()
    message = _message()

    await message_hook.handle(client, forwarder, MessageCreate(message), supervisor)

    client.mark_seen.assert_awaited_once_with(message)
    forwarder.forward_message.assert_awaited_once_with(message, sender)
    supervisor.note_success.assert_called_once()


@pytest.mark.asyncio
async def test_own_messages_are_not_relayed(store):
    client = _client(store)
    forwarder = SimpleNamespace(forward_message=AsyncMock())

    await message_hook.handle(client, forwarder, MessageCreate(_message(author="100")))

    client.mark_seen.assert_not_awaited()
    forwarder.forward_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_sender_is_skipped(store):
    client = _client(store)
    forwarder = SimpleNamespace(forward_message=AsyncMock())

    await message_hook.handle(client, forwarder, MessageCreate(_message(author="999")))

    client.mark_seen.assert_awaited_once()
    forwarder.forward_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_mark_seen_failure_does_not_block_forwarding(store):
    client = _client(store)
    client.mark_seen.side_effect = FetchError("500")
    store.get_or_create("user", "7", {"username": "alice"})
    forwarder = SimpleNamespace(forward_message=AsyncMock(return_value=False))
    supervisor = MagicMock()

    await message_hook.handle(client, forwarder, MessageCreate(_message()), supervisor)

    forwarder.forward_message.assert_awaited_once()
    supervisor.note_success.assert_not_called()
