"""Client hub owning the entity store, event bus and sync pipeline."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Dict, List, Optional

from insta_relay.config import core
from insta_relay.config.polling import Polling
from insta_relay.events import Connected, EventBus, EventKind
from insta_relay.memory.cache import Chat, EntityStore, Message, User
from insta_relay.sync.paths import is_id
from insta_relay.sync.polling import PollingScheduler
from insta_relay.sync.reconciler import PatchReconciler, is_message_valid
from insta_relay.sync.replay import ReplayBuffer
from insta_relay.sync.router import ChangeRouter

from .errors import FetchError
from .gateway import InstagramGateway

logger = logging.getLogger(__name__)


class InstaClient:
    """
    Main entry point for consumers.

    Subscribe with :meth:`on`, then :meth:`login`. Realtime and push transports
    feed :meth:`handle_realtime_receive` / :meth:`handle_push_receive`; anything
    they deliver before login completes is queued and replayed afterwards.
    """

    def __init__(
        self,
        gateway: Optional[InstagramGateway] = None,
        *,
        store: Optional[EntityStore] = None,
        bus: Optional[EventBus] = None,
        polling_settings: Optional[Polling] = None,
        message_max_age: Optional[int] = None,
        settle_delay: Optional[float] = None,
        watermark: Optional[int] = None,
    ) -> None:
        self.gateway = gateway or InstagramGateway()
        self.store = store or EntityStore()
        self.bus = bus or EventBus()
        self.user: Optional[User] = None

        max_age = core.MESSAGE_MAX_AGE if message_max_age is None else message_max_age
        self._settle_delay = core.BOOTSTRAP_SETTLE_DELAY if settle_delay is None else settle_delay

        self.replay = ReplayBuffer()
        self.reconciler = PatchReconciler(
            self.store,
            self.bus,
            self.fetch_user,
            is_valid=functools.partial(is_message_valid, max_age=max_age),
        )
        self.router = ChangeRouter(self.store, self.reconciler, self.bus, self, watermark=watermark)
        self.poller = PollingScheduler(
            self.gateway.inbox_threads, self.router.process_inbox, self.bus, polling_settings
        )
        self._tasks: set[asyncio.Task] = set()

    @property
    def ready(self) -> bool:
        return self.replay.ready

    def on(self, kind: EventKind):
        return self.bus.on(kind)

    # ------------------------------------------------------------------ #
    # Fetch-or-cache
    # ------------------------------------------------------------------ #

    async def fetch_user(self, query: str, force: bool = False) -> User:
        """Fetch a user by ID or username and cache it."""

        user_id = str(query) if is_id(query) else await self.gateway.user_id_from_username(query)
        cached = self.store.get("user", user_id)
        if cached is None:
            payload = await self.gateway.user_info(user_id)
            return self.store.get_or_create("user", user_id, payload)
        if force:
            self.store.apply(cached, await self.gateway.user_info(user_id))
        return cached

    async def fetch_chat(self, chat_id: str, force: bool = False) -> Chat:
        """Fetch a thread by ID and cache it."""

        chat_id = str(chat_id)
        cached = self.store.get("chat", chat_id)
        if cached is None:
            payload = await self.gateway.thread(chat_id)
            return self.store.get_or_create("chat", chat_id, payload)
        if force:
            self.store.apply(cached, await self.gateway.thread(chat_id))
        return cached

    async def fetch_pending_threads(self) -> List[Dict[str, Any]]:
        return await self.gateway.pending_threads()

    async def mark_seen(self, message: Message) -> None:
        await self.gateway.mark_seen(message.chat_id)

    # ------------------------------------------------------------------ #
    # Inbound transports
    # ------------------------------------------------------------------ #

    def handle_realtime_receive(self, topic: Any, payload: Any) -> None:
        if self.replay.offer("realtime", topic, payload):
            return
        self._spawn(self.router.handle_realtime(topic, payload))

    def handle_push_receive(self, notification: Any) -> None:
        if self.replay.offer("push", notification):
            return
        self._spawn(self.router.handle_notification(notification))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Update task failed", exc_info=task.exception())

    async def _dispatch_replayed(self, source: str, *args: Any) -> None:
        if source == "realtime":
            await self.router.handle_realtime(*args)
        elif source == "push":
            await self.router.handle_notification(*args)

    async def join(self) -> None:
        """Wait for every in-flight update task and the hook tasks it started."""

        while self._tasks or self.bus.pending:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            await self.bus.join()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def login(self, username: str, password: str, state: Optional[Dict[str, Any]] = None) -> None:
        """
        Authenticate and bootstrap the cache.

        :class:`~insta_relay.clients.errors.AuthenticationError` and
        :class:`~insta_relay.clients.errors.RateLimitedError` from the login
        call propagate so the caller can decide to retry or abort.
        """

        user_id = await self.gateway.login(username, password, state)
        payload = await self.gateway.user_info(user_id)
        self.user = self.store.get_or_create("user", user_id, payload, patch=True)
        logger.info("Logged in as %s", self.user.username)

        try:
            inbox = await self.gateway.inbox_threads()
            pending = await self.gateway.pending_threads()
        except FetchError as exc:
            logger.warning("Failed to load conversations: %s", exc)
            inbox, pending = [], []

        for thread in inbox:
            self.store.get_or_create("chat", thread["thread_id"], thread, patch=True)
        self.router.load_pending(pending)
        logger.info(
            "Cached %d chat(s), %d pending", self.store.size("chat"), len(self.store.pending_chats)
        )

        if self._settle_delay > 0:
            await asyncio.sleep(self._settle_delay)

        # Realtime transport is not wired; the inbox poller is the delivery path.
        self.poller.start()

        self.replay.mark_ready()
        await self.bus.publish(Connected(self.user))
        await self.replay.drain(self._dispatch_replayed)

    def export_state(self) -> Dict[str, Any]:
        return self.gateway.export_state()

    async def logout(self) -> None:
        await self.gateway.logout()

    async def close(self) -> None:
        await self.poller.stop()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
        await self.bus.close()


__all__ = ["InstaClient"]
