import pytest

from insta_relay.memory.cache import Chat, EntityStore, User


def _thread(tid, users, **extra):
    payload = {
        "thread_id": tid,
        "thread_title": extra.pop("title", "group"),
        "users": [{"pk": uid, "username": f"user{uid}", "full_name": f"User {uid}"} for uid in users],
    }
    payload.update(extra)
    return payload


def test_get_or_create_inserts_once_and_keeps_identity():
    store = EntityStore()

    first = store.get_or_create("user", "1", {"pk": 1, "username": "alice"})
    second = store.get_or_create("user", "1", {"pk": 1, "username": "renamed"})

    assert first is second
    assert first.username == "alice"
    assert store.size("user") == 1


def test_get_or_create_patches_only_when_requested():
    store = EntityStore()
    user = store.get_or_create("user", "1", {"username": "alice", "follower_count": 3})

    store.get_or_create("user", "1", {"username": "alice2", "pk": "999"}, patch=True)

    assert user.username == "alice2"
    assert user.follower_count == 3
    assert user.id == "1"


def test_chat_members_are_shared_cached_users():
    store = EntityStore()
    chat = store.get_or_create("chat", "10", _thread("10", ["1", "2"]))

    assert isinstance(chat, Chat)
    assert list(chat.members) == ["1", "2"]
    assert chat.members["1"] is store.get("user", "1")
    assert isinstance(store.get("user", "2"), User)


def test_chat_items_attach_messages_with_matching_chat_id():
    store = EntityStore()
    chat = store.get_or_create(
        "chat",
        "10",
        _thread("10", ["1"], items=[{"item_id": "m1", "user_id": 1, "timestamp": "5", "item_type": "text", "text": "hi"}]),
    )

    message = store.message("10", "m1")
    assert message is chat.messages["m1"]
    assert message.chat_id == "10"
    assert message.timestamp == 5
    assert message.content == "hi"


def test_pending_threads_are_indexed():
    store = EntityStore()
    chat = store.get_or_create("chat", "10", _thread("10", ["1"], pending=True))

    assert store.pending_chat("10") is chat
    assert store.pending_chat("11") is None


def test_get_returns_none_for_unknown_ids_and_rejects_unknown_kinds():
    store = EntityStore()

    assert store.get("chat", "404") is None
    assert store.message("404", "m") is None
    with pytest.raises(ValueError):
        store.get("post", "1")


def test_attach_message_inserts_once_then_patches():
    store = EntityStore()
    chat = store.get_or_create("chat", "10", _thread("10", ["1"]))

    first, created = store.attach_message(chat, {"item_id": "m1", "user_id": "1", "text": "hi"})
    again, created_again = store.attach_message(chat, {"item_id": "m1", "text": "edited"})

    assert created is True
    assert created_again is False
    assert again is first
    assert store.message("10", "m1").content == "edited"
    assert store.detach_message(chat, "m1") is first
    assert store.message("10", "m1") is None


def test_malformed_thread_items_are_skipped():
    store = EntityStore()
    chat = store.get_or_create(
        "chat",
        "10",
        _thread("10", ["1"], items=[{"text": "no id"}, {"item_id": "m2", "user_id": "1", "text": "ok"}]),
    )

    assert list(chat.messages) == ["m2"]


def test_chat_leaves_pending_index_once_accepted():
    store = EntityStore()
    chat = store.get_or_create("chat", "10", _thread("10", ["1"], pending=True))

    store.apply(chat, {"pending": False})

    assert store.pending_chat("10") is None
    assert store.pending_chats == {}
    assert store.get("chat", "10") is chat
