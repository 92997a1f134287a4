import logging

from insta_relay.clients.instagram import InstaClient
from insta_relay.events import Connected

from .fault_hook import FaultSupervisor

logger = logging.getLogger(__name__)


async def handle(client: InstaClient, event: Connected, supervisor: FaultSupervisor) -> None:
    """Log the session and clear the fault counter once the client is ready."""
    logger.info(
        "%s is ready for chats (ID: %s, %d chat(s) cached)",
        event.user.username,
        event.user.id,
        client.store.size("chat"),
    )
    supervisor.reset()
