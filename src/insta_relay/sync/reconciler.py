"""
Turn entity patches into change events.

Each ``patch_*`` coroutine captures an immutable snapshot, mutates the cached
entity and diffs the two states before its first ``await``. That keeps the
snapshot/mutation pair atomic with respect to any other task touching the same
entity. Resolving the user behind a like runs afterwards as a bus task.

Membership and like diffs report a single delta per patch: when several
members or likes change at once, only the first difference (in payload order)
produces an event.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from insta_relay.clients.errors import FetchError
from insta_relay.events import (
    CallEnd,
    CallStart,
    ChangeEvent,
    ChatAdminAdd,
    ChatAdminRemove,
    ChatNameUpdate,
    ChatUserAdd,
    ChatUserRemove,
    ClientFault,
    EventBus,
    LikeAdd,
    LikeRemove,
    MessageCreate,
    MessageDelete,
)
from insta_relay.memory.cache import Chat, ChatSnapshot, EntityStore, Message, MessageSnapshot, User
from insta_relay.memory.cache.models import SYSTEM_ITEM_TYPES

logger = logging.getLogger(__name__)

UserResolver = Callable[[str], Awaitable[User]]
MessagePredicate = Callable[[Message], bool]


def is_message_valid(message: Message, max_age: int = 0, *, now: Optional[float] = None) -> bool:
    """Reject system items and, when ``max_age`` (seconds) is set, stale ones."""

    if message.is_system:
        return False
    if max_age <= 0:
        return True
    current = time.time() if now is None else now
    return message.timestamp / 1_000_000 + max_age > current


def diff_chat(old: ChatSnapshot, chat: Chat, store: EntityStore) -> List[ChangeEvent]:
    """Events for ``chat`` relative to ``old``: name, then members, then call state."""

    events: List[ChangeEvent] = []
    new = chat.snapshot()

    if old.name != new.name:
        events.append(ChatNameUpdate(chat, old.name, new.name))

    old_ids = set(old.member_ids)
    new_ids = set(new.member_ids)
    if len(new_ids) > len(old_ids):
        added = next((uid for uid in new.member_ids if uid not in old_ids), None)
        if added is not None:
            events.append(ChatUserAdd(chat, chat.members[added]))
    elif len(new_ids) < len(old_ids):
        removed = next((uid for uid in old.member_ids if uid not in new_ids), None)
        user = store.get("user", removed) if removed is not None else None
        if user is not None:
            events.append(ChatUserRemove(chat, user))

    if not old.calling and new.calling:
        events.append(CallStart(chat))
    elif old.calling and not new.calling:
        events.append(CallEnd(chat))

    return events


def diff_likes(old: MessageSnapshot, message: Message) -> tuple[str, str] | None:
    """Return ``("add"|"remove", user_id)`` for the first like delta, if any."""

    old_ids = list(old.like_ids)
    new_ids = message.like_ids()
    if len(old_ids) > len(new_ids):
        removed = next((uid for uid in old_ids if uid not in new_ids), None)
        if removed is not None:
            return "remove", removed
    elif len(new_ids) > len(old_ids):
        added = next((uid for uid in new_ids if uid not in old_ids), None)
        if added is not None:
            return "add", added
    return None


class PatchReconciler:
    """Apply payloads to cached chats/messages and publish what changed."""

    def __init__(
        self,
        store: EntityStore,
        bus: EventBus,
        resolve_user: UserResolver,
        *,
        is_valid: MessagePredicate = is_message_valid,
    ) -> None:
        self._store = store
        self._bus = bus
        self._resolve_user = resolve_user
        self._is_valid = is_valid

    async def _publish(self, events: List[ChangeEvent]) -> None:
        for event in events:
            await self._bus.publish(event)

    # ------------------------------------------------------------------ #
    # Chats
    # ------------------------------------------------------------------ #

    async def patch_chat(self, chat: Chat, payload: Dict[str, Any]) -> List[ChangeEvent]:
        old = chat.snapshot()
        self._store.apply(chat, payload)
        events = diff_chat(old, chat, self._store)
        await self._publish(events)
        return events

    async def add_admin(self, chat: Chat, user_id: str) -> Optional[ChangeEvent]:
        user_id = str(user_id)
        if user_id in chat.admin_user_ids:
            return None
        chat.admin_user_ids.add(user_id)
        user = await self._resolve_user(user_id)
        event = ChatAdminAdd(chat, user)
        await self._bus.publish(event)
        return event

    async def remove_admin(self, chat: Chat, user_id: str) -> Optional[ChangeEvent]:
        user_id = str(user_id)
        if user_id not in chat.admin_user_ids:
            return None
        chat.admin_user_ids.discard(user_id)
        user = await self._resolve_user(user_id)
        event = ChatAdminRemove(chat, user)
        await self._bus.publish(event)
        return event

    # ------------------------------------------------------------------ #
    # Messages
    # ------------------------------------------------------------------ #

    async def create_message(self, chat: Chat, payload: Dict[str, Any]) -> Optional[Message]:
        """Attach a new message; returns it only when it was not cached before."""

        if payload.get("item_type") in SYSTEM_ITEM_TYPES:
            return None
        message, created = self._store.attach_message(chat, payload)
        if not created:
            logger.debug("Message %s already cached in chat %s", message.id, chat.id)
            return None
        if self._is_valid(message):
            await self._bus.publish(MessageCreate(message))
        return message

    async def patch_message(
        self, chat: Chat, payload: Dict[str, Any], item_id: Optional[str] = None
    ) -> Optional[Tuple[str, str]]:
        """
        Patch a cached message and announce the first like delta.

        ``item_id`` is used when the fragment itself does not carry one. The
        diff is computed before returning; resolving the liking user and
        publishing run as a bus task so a slow lookup never delays the records
        that follow. Returns the ``(op, user_id)`` delta, if any.
        """

        message_id = payload.get("item_id") or item_id
        message = chat.messages.get(str(message_id)) if message_id is not None else None
        if message is None:
            return None

        old = message.snapshot()
        self._store.apply(message, payload)
        delta = diff_likes(old, message)
        if delta is None:
            return None

        self._bus.spawn(self._announce_like(delta, message))
        return delta

    async def _announce_like(self, delta: Tuple[str, str], message: Message) -> None:
        op, user_id = delta
        try:
            user = await self._resolve_user(user_id)
        except FetchError as exc:
            logger.warning("Could not resolve user %s for like on message %s: %s", user_id, message.id, exc)
            await self._bus.publish(ClientFault(exc, source="realtime"))
            return
        event: ChangeEvent = LikeAdd(user, message) if op == "add" else LikeRemove(user, message)
        await self._bus.publish(event)

    async def delete_message(self, chat: Chat, message_id: str) -> Optional[Message]:
        existing = self._store.detach_message(chat, message_id)
        if existing is None:
            logger.debug("Ignoring delete for unknown message %s in chat %s", message_id, chat.id)
            return None
        await self._bus.publish(MessageDelete(existing))
        return existing


__all__ = ["PatchReconciler", "diff_chat", "diff_likes", "is_message_valid"]
