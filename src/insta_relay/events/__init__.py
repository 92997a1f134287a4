"""Change event types and the bus that delivers them."""

from .bus import ALL_EVENTS, EventBus
from .types import (
    CallEnd,
    CallStart,
    ChangeEvent,
    ChatAdminAdd,
    ChatAdminRemove,
    ChatNameUpdate,
    ChatUserAdd,
    ChatUserRemove,
    ClientFault,
    Connected,
    EventKind,
    FollowRequest,
    LikeAdd,
    LikeRemove,
    MessageCreate,
    MessageDelete,
    NewFollower,
    PendingRequest,
)

__all__ = [
    "ALL_EVENTS",
    "CallEnd",
    "CallStart",
    "ChangeEvent",
    "ChatAdminAdd",
    "ChatAdminRemove",
    "ChatNameUpdate",
    "ChatUserAdd",
    "ChatUserRemove",
    "ClientFault",
    "Connected",
    "EventBus",
    "EventKind",
    "FollowRequest",
    "LikeAdd",
    "LikeRemove",
    "MessageCreate",
    "MessageDelete",
    "NewFollower",
    "PendingRequest",
]
