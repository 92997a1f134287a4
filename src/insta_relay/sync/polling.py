"""
Inbox polling used when realtime delivery is unavailable.

The loop sleeps a random delay drawn from the active time-of-day band, pulls
the inbox and hands the listing to the router. A failing cycle is published
as a :class:`~insta_relay.events.ClientFault` and the loop carries on; only
:meth:`PollingScheduler.stop` (or process exit) ends it.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional

from insta_relay.config import polling as polling_cfg
from insta_relay.config.polling import Polling
from insta_relay.events import ClientFault, EventBus

logger = logging.getLogger(__name__)

InboxFetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]
SnapshotHandler = Callable[[List[Dict[str, Any]]], Awaitable[Any]]


class PollingScheduler:
    def __init__(
        self,
        fetch_inbox: InboxFetcher,
        on_snapshot: SnapshotHandler,
        bus: EventBus,
        settings: Optional[Polling] = None,
        *,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._fetch_inbox = fetch_inbox
        self._on_snapshot = on_snapshot
        self._bus = bus
        self._settings = settings or polling_cfg
        self._clock = clock
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_day(self, hour: int) -> bool:
        return self._settings.DAY_START_HOUR <= hour < self._settings.DAY_END_HOUR

    def next_delay(self) -> int:
        """Return the next delay in milliseconds for the current band."""

        hour = self._clock().hour
        if self.is_day(hour):
            lo, hi, band = self._settings.DAY_MIN_DELAY, self._settings.DAY_MAX_DELAY, "day"
        else:
            lo, hi, band = self._settings.NIGHT_MIN_DELAY, self._settings.NIGHT_MAX_DELAY, "night"
        delay = self._rng.randint(lo, hi)
        logger.debug("%s band (%dh): next poll in %.1fs", band, hour, delay / 1000)
        return delay

    async def run_once(self) -> bool:
        """Fetch and route one inbox listing. Returns ``False`` if the cycle failed."""

        try:
            threads = await self._fetch_inbox()
            await self._on_snapshot(threads)
        except Exception as exc:
            logger.error("Polling cycle failed: %s", exc)
            await self._bus.publish(ClientFault(exc, source="polling"))
            return False
        return True

    async def _loop(self) -> None:
        while True:
            await self._sleep(self.next_delay() / 1000)
            await self.run_once()

    def start(self) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.info("Starting inbox polling")
        self._task = asyncio.create_task(self._loop())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if not task:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
