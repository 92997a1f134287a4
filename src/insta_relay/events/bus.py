"""Subscription registry that fans change events out to hooks."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Coroutine, DefaultDict, List, Set, Union

from .types import ChangeEvent, EventKind

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]

ALL_EVENTS = "*"


class EventBus:
    """
    Publish/subscribe for :class:`ChangeEvent` values.

    Handlers are called in registration order. Plain callables run inline;
    coroutine handlers are scheduled as tracked tasks so a slow consumer (a
    webhook retrying against Discord) never holds up the sync pipeline. Tasks
    start in publish order. A failing handler is logged and skipped.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of handler and continuation tasks still running."""
        return len(self._tasks)

    def subscribe(self, kind: EventKind | str, handler: Handler) -> Handler:
        self._handlers[kind].append(handler)
        return handler

    def unsubscribe(self, kind: EventKind | str, handler: Handler) -> None:
        try:
            self._handlers[kind].remove(handler)
        except ValueError:
            pass

    def on(self, kind: EventKind | str) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`subscribe`."""

        def decorator(handler: Handler) -> Handler:
            return self.subscribe(kind, handler)

        return decorator

    async def publish(self, event: ChangeEvent) -> None:
        handlers = list(self._handlers.get(event.kind, ())) + list(self._handlers.get(ALL_EVENTS, ()))
        logger.debug("Publishing %s to %d handler(s)", event.kind, len(handlers))
        for handler in handlers:
            try:
                result = handler(event)
            except Exception:
                logger.exception("Handler %r failed for %s event", handler, event.kind)
                continue
            if inspect.isawaitable(result):
                self.spawn(self._run_handler(handler, event, result))

    async def _run_handler(self, handler: Handler, event: ChangeEvent, result: Awaitable[None]) -> None:
        try:
            await result
        except Exception:
            logger.exception("Handler %r failed for %s event", handler, event.kind)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run ``coro`` as a task owned by the bus; failures are logged."""

        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Event task failed", exc_info=task.exception())

    async def join(self) -> None:
        """Wait until every spawned task, including ones they spawn, has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
