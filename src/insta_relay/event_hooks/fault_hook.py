"""
Supervise faults published by the sync pipeline.

Counts :class:`~insta_relay.events.ClientFault` events and tells the operator
through the webhook when Instagram throttles the account or when faults pile
up. The counter resets after the configured cool-down.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from insta_relay.clients.errors import RateLimitedError
from insta_relay.config import polling as polling_cfg
from insta_relay.config.polling import Polling
from insta_relay.events import ClientFault
from insta_relay.forwarding import DiscordForwarder
from insta_relay.sync.polling import PollingScheduler

logger = logging.getLogger(__name__)

ALERT_USERNAME = "Instagram Bot - ALERT"
INFO_USERNAME = "Instagram Bot - INFO"


def is_rate_limited(error: BaseException) -> bool:
    return isinstance(error, RateLimitedError) or "please wait a few minutes" in str(error).lower()


def wait_notice(minutes: int) -> str:
    return f"⏳ Instagram asked us to wait {minutes} minutes before retrying. Bot paused..."


class FaultSupervisor:
    def __init__(
        self,
        forwarder: DiscordForwarder,
        settings: Optional[Polling] = None,
        *,
        poller: Optional[PollingScheduler] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._forwarder = forwarder
        self._settings = settings or polling_cfg
        self._poller = poller
        self._sleep = sleep
        self._cooldown: asyncio.Task | None = None
        self.error_count = 0

    def reset(self) -> None:
        self.error_count = 0

    def note_success(self) -> None:
        self.error_count = max(0, self.error_count - 1)

    async def handle(self, event: ClientFault) -> None:
        error = event.error

        if is_rate_limited(error):
            minutes = self._settings.RATE_LIMIT_POLL_WAIT_MINUTES
            logger.warning("Instagram rate limit hit during %s; pausing %d minute(s)", event.source, minutes)
            await self._forwarder.send_notice(INFO_USERNAME, wait_notice(minutes))
            self._start_cooldown(minutes * 60, pause_polling=True)
            return

        self.error_count += 1
        max_errors = self._settings.MAX_POLLING_ERRORS
        logger.error("Instagram client error (%d/%d): %s", self.error_count, max_errors, error)

        if self.error_count >= max_errors:
            delay = self._settings.POLLING_DELAY_ON_ERROR / 1000
            logger.warning("Too many polling errors; cooling down for %.0fs", delay)
            await self._forwarder.send_notice(ALERT_USERNAME, "I got banned...")
            self._start_cooldown(delay, pause_polling=False)

    def _start_cooldown(self, seconds: float, *, pause_polling: bool) -> None:
        if self._cooldown is not None and not self._cooldown.done():
            return
        self._cooldown = asyncio.create_task(self._cool_down(seconds, pause_polling))

    async def _cool_down(self, seconds: float, pause_polling: bool) -> None:
        paused = pause_polling and self._poller is not None and self._poller.running
        if paused:
            await self._poller.stop()
        await self._sleep(seconds)
        self.reset()
        if paused:
            self._poller.start()
        logger.info("Cool-down over; polling resumes")

    async def wait_cooldown(self) -> None:
        if self._cooldown is not None:
            await self._cooldown
