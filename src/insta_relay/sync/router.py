"""
Route raw updates to the reconciler.

Three inbound shapes arrive here:

* realtime deliveries on the message-sync topic: a JSON array of batches, each
  holding ``{"op", "path", "value"}`` records;
* push notifications tagged with a ``push_category``;
* polled inbox listings, filtered against a monotonic timestamp watermark.

Anything the router does not recognise (unknown topic, op or path, broken
JSON) is dropped with a debug log so protocol drift never breaks the bot.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Protocol

from insta_relay.clients.errors import FetchError
from insta_relay.events import ClientFault, EventBus, FollowRequest, NewFollower, PendingRequest
from insta_relay.memory.cache import Chat, EntityStore, Message, User

from .paths import AdminPath, MessagePath, ThreadPath, parse_path
from .reconciler import PatchReconciler

logger = logging.getLogger(__name__)

MESSAGE_SYNC_TOPIC = "146"

_MALFORMED = (ValueError, KeyError, TypeError, AttributeError)


class Fetcher(Protocol):
    def fetch_chat(self, chat_id: str) -> Awaitable[Chat]: ...

    def fetch_user(self, query: str) -> Awaitable[User]: ...

    def fetch_pending_threads(self) -> Awaitable[List[Dict[str, Any]]]: ...


def now_micros() -> int:
    return int(time.time() * 1_000_000)


def _field(data: Any, *names: str) -> Any:
    """Read the first present key/attribute (snake_case or camelCase) from ``data``."""
    for name in names:
        if isinstance(data, Mapping):
            if data.get(name) is not None:
                return data[name]
        elif getattr(data, name, None) is not None:
            return getattr(data, name)
    return None


def _decode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


class ChangeRouter:
    def __init__(
        self,
        store: EntityStore,
        reconciler: PatchReconciler,
        bus: EventBus,
        fetcher: Fetcher,
        *,
        watermark: Optional[int] = None,
    ) -> None:
        self._store = store
        self._reconciler = reconciler
        self._bus = bus
        self._fetcher = fetcher
        self._watermark = now_micros() if watermark is None else int(watermark)

    @property
    def watermark(self) -> int:
        """Highest polled item timestamp (microseconds) already processed."""
        return self._watermark

    # ------------------------------------------------------------------ #
    # Realtime
    # ------------------------------------------------------------------ #

    async def handle_realtime(self, topic: Any, payload: Any) -> None:
        topic_id = str(_field(topic, "id") or topic)
        if topic_id != MESSAGE_SYNC_TOPIC:
            logger.debug("Ignoring realtime topic %s", topic_id)
            return

        try:
            batches = _decode(payload)
        except (ValueError, UnicodeDecodeError):
            logger.debug("Dropping undecodable realtime payload on topic %s", topic_id)
            return
        if not isinstance(batches, list):
            return

        for batch in batches:
            records = batch.get("data") if isinstance(batch, Mapping) else None
            for record in records or []:
                await self.route_record(record)

    async def route_record(self, record: Mapping[str, Any]) -> None:
        """Dispatch one ``{op, path, value}`` record; never raises for bad input."""

        try:
            await self._dispatch(record)
        except _MALFORMED as exc:
            logger.debug("Dropping malformed realtime record %r: %s", record, exc)
        except FetchError as exc:
            logger.warning("Lookup failed while routing %s: %s", record.get("path"), exc)
            await self._bus.publish(ClientFault(exc, source="realtime"))

    async def _dispatch(self, record: Mapping[str, Any]) -> None:
        op = record.get("op")
        path = parse_path(record.get("path", ""))
        value = record.get("value")

        if op == "replace":
            if isinstance(path, ThreadPath):
                await self._replace_thread(path.thread_id, _decode(value))
            elif isinstance(path, MessagePath):
                chat = await self._fetcher.fetch_chat(path.thread_id)
                await self._reconciler.patch_message(chat, _decode(value), path.item_id)
        elif op == "add":
            if isinstance(path, AdminPath):
                chat = await self._fetcher.fetch_chat(path.thread_id)
                await self._reconciler.add_admin(chat, path.user_id)
            elif isinstance(path, MessagePath):
                chat = await self._fetcher.fetch_chat(path.thread_id)
                await self._reconciler.create_message(chat, _decode(value))
        elif op == "remove":
            if isinstance(path, AdminPath):
                chat = await self._fetcher.fetch_chat(path.thread_id)
                await self._reconciler.remove_admin(chat, path.user_id)
            elif isinstance(path, MessagePath):
                chat = await self._fetcher.fetch_chat(path.thread_id)
                await self._reconciler.delete_message(chat, str(value or path.item_id))
        else:
            logger.debug("Ignoring realtime op %r", op)

    async def _replace_thread(self, thread_id: str, payload: Dict[str, Any]) -> None:
        chat = self._store.get("chat", thread_id)
        if chat is None:
            self._store.get_or_create("chat", thread_id, payload)
            return
        await self._reconciler.patch_chat(chat, payload)

    # ------------------------------------------------------------------ #
    # Push notifications
    # ------------------------------------------------------------------ #

    async def handle_notification(self, notification: Any) -> None:
        category = _field(notification, "push_category", "pushCategory")
        if category == "new_follower":
            user = await self._fetcher.fetch_user(str(_field(notification, "source_user_id", "sourceUserId")))
            await self._bus.publish(NewFollower(user))
        elif category == "private_user_follow_request":
            user = await self._fetcher.fetch_user(str(_field(notification, "source_user_id", "sourceUserId")))
            await self._bus.publish(FollowRequest(user))
        elif category == "direct_v2_pending":
            params = _field(notification, "action_params", "actionParams") or {}
            chat_id = str(_field(params, "id") or "")
            if self._store.pending_chat(chat_id) is None:
                self.load_pending(await self._fetcher.fetch_pending_threads())
            pending = self._store.pending_chat(chat_id)
            if pending is not None:
                await self._bus.publish(PendingRequest(pending))
        else:
            logger.debug("Ignoring push category %r", category)

    def load_pending(self, threads: Iterable[Dict[str, Any]]) -> List[Chat]:
        chats = []
        for thread in threads:
            chat = self._store.get_or_create("chat", thread["thread_id"], thread, patch=True)
            self._store.mark_pending(chat)
            chats.append(chat)
        return chats

    # ------------------------------------------------------------------ #
    # Polling
    # ------------------------------------------------------------------ #

    async def process_inbox(self, threads: Iterable[Dict[str, Any]]) -> List[Message]:
        """
        Feed items newer than the watermark through message creation.

        Items at or below the watermark are attached silently when missing.
        The watermark moves to the newest timestamp seen once every thread of
        the listing has been processed, so one thread cannot hide another's
        older-but-unseen items within the same cycle. A malformed thread or
        item is skipped without affecting the rest of the listing.
        """

        cutoff = self._watermark
        newest = cutoff
        created: List[Message] = []

        for thread in threads:
            try:
                chat = self._inbox_chat(thread)
                items = thread.get("items") or []
            except _MALFORMED as exc:
                logger.debug("Skipping malformed polled thread: %s", exc)
                continue

            fresh = []
            for item in items:
                try:
                    timestamp = int(item.get("timestamp") or 0)
                    if timestamp > cutoff:
                        fresh.append((timestamp, item))
                    elif str(item.get("item_id")) not in chat.messages:
                        self._store.attach_message(chat, item)
                except _MALFORMED as exc:
                    logger.debug("Skipping malformed polled item in chat %s: %s", chat.id, exc)

            fresh.sort(key=lambda pair: pair[0])
            for timestamp, item in fresh:
                newest = max(newest, timestamp)
                try:
                    message = await self._reconciler.create_message(chat, item)
                except _MALFORMED as exc:
                    logger.debug("Skipping malformed polled item in chat %s: %s", chat.id, exc)
                    continue
                if message is not None:
                    created.append(message)

        self._watermark = max(self._watermark, newest)
        return created

    def _inbox_chat(self, thread: Dict[str, Any]) -> Chat:
        thread_id = str(thread["thread_id"])
        chat = self._store.get("chat", thread_id)
        if chat is None:
            chat = self._store.get_or_create(
                "chat", thread_id, {k: v for k, v in thread.items() if k != "items"}
            )
        return chat


__all__ = ["ChangeRouter", "Fetcher", "MESSAGE_SYNC_TOPIC", "now_micros"]
