"""Process bootstrap: wire hooks, log in with retries, run until stopped."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from insta_relay.config import core, forwarding
from insta_relay.event_hooks import message_hook, ready_hook
from insta_relay.event_hooks.fault_hook import INFO_USERNAME, FaultSupervisor, is_rate_limited, wait_notice
from insta_relay.events import ClientFault, Connected, MessageCreate
from insta_relay.forwarding import DiscordForwarder

from .errors import AuthenticationError, InstaRelayError
from .instagram import InstaClient
from .session import SessionManager

logger = logging.getLogger(__name__)


def register_hooks(client: InstaClient, forwarder: DiscordForwarder) -> FaultSupervisor:
    """Subscribe the forwarding, fault and ready hooks on ``client``."""

    supervisor = FaultSupervisor(forwarder, poller=client.poller)

    @client.on("message_create")
    async def on_message_create(event: MessageCreate) -> None:
        await message_hook.handle(client, forwarder, event, supervisor)

    @client.on("error")
    async def on_error(event: ClientFault) -> None:
        await supervisor.handle(event)

    @client.on("connected")
    async def on_connected(event: Connected) -> None:
        await ready_hook.handle(client, event, supervisor)

    return supervisor


async def connect_with_retry(
    client: InstaClient,
    forwarder: DiscordForwarder,
    sessions: SessionManager,
    *,
    max_retries: Optional[int] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """
    Log ``client`` in, retrying up to ``max_retries`` times.

    A rate-limit answer sends a wait notice and sleeps the configured minutes
    before the next attempt; other failures back off 10s, 20s, 30s... Returns
    ``False`` when every attempt failed.
    """

    attempts = core.LOGIN_MAX_RETRIES if max_retries is None else max_retries
    for attempt in range(attempts):
        try:
            await client.login(core.INSTAGRAM_USERNAME, core.INSTAGRAM_PASSWORD, sessions.load())
        except InstaRelayError as exc:
            logger.error("Login failed (attempt %d/%d): %s", attempt + 1, attempts, exc)

            if is_rate_limited(exc):
                minutes = core.RATE_LIMIT_LOGIN_WAIT_MINUTES
                await forwarder.send_notice(INFO_USERNAME, wait_notice(minutes))
                logger.info("Waiting %d minute(s) before retrying login", minutes)
                await sleep(minutes * 60)
                continue

            if isinstance(exc, AuthenticationError):
                sessions.clear()

            if attempt < attempts - 1:
                delay = (attempt + 1) * 10
                logger.info("Retrying login in %ds", delay)
                await sleep(delay)
            continue

        logger.info("Login succeeded")
        sessions.save(client.export_state())
        return True

    logger.error("Unable to log in after %d attempt(s)", attempts)
    return False


async def main() -> None:
    sessions = SessionManager()
    async with DiscordForwarder(forwarding.DISCORD_WEBHOOK_URL) as forwarder:
        client = InstaClient()
        register_hooks(client, forwarder)
        if not await connect_with_retry(client, forwarder, sessions):
            return
        try:
            await asyncio.Event().wait()
        finally:
            await client.close()


def run() -> None:
    """Start the relay using configuration from the environment."""

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
