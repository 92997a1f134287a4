"""
Relay cached Instagram messages to a Discord channel webhook.

Uses :meth:`discord.Webhook.from_url` on a shared :class:`aiohttp.ClientSession`.
Delivery is retried a bounded number of times; a message that still fails is
logged and dropped so one bad send never blocks the event pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
import discord

from insta_relay.config import forwarding
from insta_relay.memory.cache import Message, User

logger = logging.getLogger(__name__)

_SEND_ERRORS = (discord.HTTPException, aiohttp.ClientError, asyncio.TimeoutError)


class DiscordForwarder:
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        default_username: Optional[str] = None,
    ) -> None:
        self.webhook_url = webhook_url or forwarding.DISCORD_WEBHOOK_URL
        self.max_retries = forwarding.WEBHOOK_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = forwarding.WEBHOOK_RETRY_DELAY if retry_delay is None else retry_delay
        self.timeout = forwarding.WEBHOOK_TIMEOUT if timeout is None else timeout
        self.default_username = default_username or forwarding.DEFAULT_USERNAME
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "DiscordForwarder":
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _webhook(self) -> discord.Webhook:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return discord.Webhook.from_url(self.webhook_url, session=self._session)

    def build_payload(self, message: Message, user: User) -> Dict[str, Any]:
        """Map ``message`` and its author onto ``Webhook.send`` keyword arguments."""

        payload: Dict[str, Any] = {
            "username": (user.full_name or user.username or self.default_username)[:80],
            "avatar_url": user.avatar_url,
            "content": message.content or "",
        }
        if message.media_url:
            payload["embeds"] = [discord.Embed().set_image(url=message.media_url)]
        elif not payload["content"]:
            payload["content"] = f"[{message.type}]"
        return payload

    async def _send(self, payload: Dict[str, Any]) -> None:
        await asyncio.wait_for(self._webhook().send(**payload), timeout=self.timeout)

    async def forward_message(self, message: Message, user: User) -> bool:
        """Send ``message`` as ``user``; returns ``True`` once Discord accepted it."""

        payload = self.build_payload(message, user)
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                await self._send(payload)
            except _SEND_ERRORS as exc:
                logger.error(
                    "Webhook delivery of message %s failed (attempt %d/%d): %s",
                    message.id,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt < attempts:
                    await asyncio.sleep(self.retry_delay)
                continue
            logger.info("Forwarded message %s from %s", message.id, user.username or user.id)
            return True
        return False

    async def send_notice(self, username: str, content: str) -> bool:
        """Post an operator notice (ban alert, rate-limit pause). Single attempt."""

        try:
            await self._send({"username": username, "content": content})
        except _SEND_ERRORS as exc:
            logger.error("Failed to send notice %r: %s", username, exc)
            return False
        logger.info("Notice sent: %s", username)
        return True


__all__ = ["DiscordForwarder"]
