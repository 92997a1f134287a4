import logging
from typing import Optional

from insta_relay.clients.errors import FetchError
from insta_relay.clients.instagram import InstaClient
from insta_relay.events import MessageCreate
from insta_relay.forwarding import DiscordForwarder

from .fault_hook import FaultSupervisor

logger = logging.getLogger(__name__)


async def handle(
    client: InstaClient,
    forwarder: DiscordForwarder,
    event: MessageCreate,
    supervisor: Optional[FaultSupervisor] = None,
) -> None:
    """Forward a newly created Instagram message to Discord."""

    message = event.message

    # 1) Never relay our own messages
    if client.user is not None and message.author_id == client.user.id:
        return

    try:
        await client.mark_seen(message)
    except FetchError as exc:
        logger.warning("Failed to mark thread %s as seen: %s", message.chat_id, exc)

    logger.info(
        "New message %s in chat %s (%d user(s) cached)",
        message.id,
        message.chat_id,
        client.store.size("user"),
    )

    # 2) Resolve the sender from the cache
    sender = client.store.get("user", message.author_id)
    if sender is None:
        logger.info("No cached user for author %s; message %s not forwarded", message.author_id, message.id)
        return
    logger.debug(
        "Sender %s (%s) private=%s verified=%s followers=%d",
        sender.username,
        sender.full_name,
        sender.is_private,
        sender.is_verified,
        sender.follower_count,
    )

    # 3) Relay
    if await forwarder.forward_message(message, sender) and supervisor is not None:
        supervisor.note_success()
