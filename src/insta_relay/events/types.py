"""
Change events published by the sync pipeline.

Every event is a frozen dataclass whose ``kind`` class attribute is the
subscription key used with :class:`~insta_relay.events.bus.EventBus`. Events
carry live cached entities (not copies) except where an old value is part of
the change itself, as with :class:`ChatNameUpdate`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Literal, Optional

from insta_relay.memory.cache import Chat, Message, User

EventKind = Literal[
    "chat_name_update",
    "chat_user_add",
    "chat_user_remove",
    "chat_admin_add",
    "chat_admin_remove",
    "call_start",
    "call_end",
    "like_add",
    "like_remove",
    "message_create",
    "message_delete",
    "new_follower",
    "follow_request",
    "pending_request",
    "connected",
    "error",
]


@dataclass(frozen=True)
class ChangeEvent:
    kind: ClassVar[EventKind]


@dataclass(frozen=True)
class ChatNameUpdate(ChangeEvent):
    kind: ClassVar[EventKind] = "chat_name_update"
    chat: Chat
    old_name: Optional[str]
    new_name: Optional[str]


@dataclass(frozen=True)
class ChatUserAdd(ChangeEvent):
    kind: ClassVar[EventKind] = "chat_user_add"
    chat: Chat
    user: User


@dataclass(frozen=True)
class ChatUserRemove(ChangeEvent):
    kind: ClassVar[EventKind] = "chat_user_remove"
    chat: Chat
    user: User


@dataclass(frozen=True)
class ChatAdminAdd(ChangeEvent):
    kind: ClassVar[EventKind] = "chat_admin_add"
    chat: Chat
    user: User


@dataclass(frozen=True)
class ChatAdminRemove(ChangeEvent):
    kind: ClassVar[EventKind] = "chat_admin_remove"
    chat: Chat
    user: User


@dataclass(frozen=True)
class CallStart(ChangeEvent):
    kind: ClassVar[EventKind] = "call_start"
    chat: Chat


@dataclass(frozen=True)
class CallEnd(ChangeEvent):
    kind: ClassVar[EventKind] = "call_end"
    chat: Chat


@dataclass(frozen=True)
class LikeAdd(ChangeEvent):
    kind: ClassVar[EventKind] = "like_add"
    user: User
    message: Message


@dataclass(frozen=True)
class LikeRemove(ChangeEvent):
    kind: ClassVar[EventKind] = "like_remove"
    user: User
    message: Message


@dataclass(frozen=True)
class MessageCreate(ChangeEvent):
    kind: ClassVar[EventKind] = "message_create"
    message: Message


@dataclass(frozen=True)
class MessageDelete(ChangeEvent):
    """``message`` is the last cached state; it is already detached from its chat."""

    kind: ClassVar[EventKind] = "message_delete"
    message: Message


@dataclass(frozen=True)
class NewFollower(ChangeEvent):
    kind: ClassVar[EventKind] = "new_follower"
    user: User


@dataclass(frozen=True)
class FollowRequest(ChangeEvent):
    kind: ClassVar[EventKind] = "follow_request"
    user: User


@dataclass(frozen=True)
class PendingRequest(ChangeEvent):
    kind: ClassVar[EventKind] = "pending_request"
    chat: Chat


@dataclass(frozen=True)
class Connected(ChangeEvent):
    kind: ClassVar[EventKind] = "connected"
    user: User


@dataclass(frozen=True)
class ClientFault(ChangeEvent):
    """A recoverable failure surfaced for supervisors (``source`` names the loop)."""

    kind: ClassVar[EventKind] = "error"
    error: BaseException
    source: str = "polling"
