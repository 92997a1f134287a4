"""
Cached Instagram entities.

Each entity is built from (and later patched with) a raw private-API payload.
``patch`` only touches the keys present in the payload, so partial realtime
fragments update a cached object without clobbering the rest of its state. The
``id`` of an entity is fixed at construction and never rewritten by a patch.

``ChatSnapshot`` and ``MessageSnapshot`` are frozen views captured before a
patch so the reconciler can diff old and new state without sharing mutable
containers with the live entity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

SYSTEM_ITEM_TYPES = frozenset({"action_log", "video_call_event"})


def user_id_of(payload: Dict[str, Any]) -> str:
    for key in ("pk", "pk_id", "id", "user_id"):
        if payload.get(key) is not None:
            return str(payload[key])
    raise KeyError("user payload carries no identifier")


def _first_candidate_url(media: Dict[str, Any]) -> Optional[str]:
    candidates = (media.get("image_versions2") or {}).get("candidates") or []
    if candidates:
        return candidates[0].get("url")
    return None


@dataclass
class User:
    id: str
    username: str = ""
    full_name: str = ""
    is_private: bool = False
    is_verified: bool = False
    follower_count: int = 0
    following_count: int = 0
    avatar_url: Optional[str] = None
    biography: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "User":
        user = cls(id=user_id_of(payload))
        user.patch(payload)
        return user

    def patch(self, payload: Dict[str, Any]) -> None:
        if "username" in payload:
            self.username = payload["username"] or ""
        if "full_name" in payload:
            self.full_name = payload["full_name"] or ""
        if "is_private" in payload:
            self.is_private = bool(payload["is_private"])
        if "is_verified" in payload:
            self.is_verified = bool(payload["is_verified"])
        if "follower_count" in payload:
            self.follower_count = int(payload["follower_count"] or 0)
        if "following_count" in payload:
            self.following_count = int(payload["following_count"] or 0)
        if "profile_pic_url" in payload:
            self.avatar_url = payload["profile_pic_url"]
        if "biography" in payload:
            self.biography = payload["biography"] or ""


@dataclass(frozen=True)
class Like:
    user_id: str
    timestamp: int = 0


@dataclass(frozen=True)
class MessageSnapshot:
    like_ids: Tuple[str, ...]


@dataclass
class Message:
    id: str
    chat_id: str
    author_id: str = ""
    type: str = "text"
    content: str = ""
    media_url: Optional[str] = None
    likes: list[Like] = field(default_factory=list)
    timestamp: int = 0

    @classmethod
    def from_payload(cls, chat_id: str, payload: Dict[str, Any]) -> "Message":
        message = cls(id=str(payload["item_id"]), chat_id=chat_id)
        message.patch(payload)
        return message

    @property
    def is_system(self) -> bool:
        return self.type in SYSTEM_ITEM_TYPES

    def like_ids(self) -> list[str]:
        return [like.user_id for like in self.likes]

    def snapshot(self) -> MessageSnapshot:
        return MessageSnapshot(like_ids=tuple(self.like_ids()))

    def patch(self, payload: Dict[str, Any]) -> None:
        if "user_id" in payload:
            self.author_id = str(payload["user_id"])
        if "timestamp" in payload:
            self.timestamp = int(payload["timestamp"])
        if "item_type" in payload:
            self.type = payload["item_type"] or "text"
        if "text" in payload:
            self.content = payload["text"] or ""
        if "like" in payload:
            self.content = payload["like"] or ""
        if "link" in payload:
            self.content = (payload["link"] or {}).get("text", self.content)
        if "media" in payload:
            self.media_url = _first_candidate_url(payload["media"] or {})
        if "animated_media" in payload:
            images = (payload["animated_media"] or {}).get("images") or {}
            self.media_url = (images.get("fixed_height") or {}).get("url")
        if "voice_media" in payload:
            audio = ((payload["voice_media"] or {}).get("media") or {}).get("audio") or {}
            self.media_url = audio.get("audio_src")
        if "reactions" in payload:
            likes = (payload["reactions"] or {}).get("likes") or []
            self.likes = [
                Like(user_id=str(like["sender_id"]), timestamp=int(like.get("timestamp") or 0))
                for like in likes
            ]


@dataclass(frozen=True)
class ChatSnapshot:
    name: Optional[str]
    member_ids: Tuple[str, ...]
    calling: bool


@dataclass
class Chat:
    """A direct thread. Owns its messages; members are shared cached users."""

    id: str
    name: Optional[str] = None
    members: Dict[str, User] = field(default_factory=dict)
    admin_user_ids: set[str] = field(default_factory=set)
    calling: bool = False
    messages: Dict[str, Message] = field(default_factory=dict)
    pending: bool = False
    is_group: bool = False
    muted: bool = False

    def snapshot(self) -> ChatSnapshot:
        return ChatSnapshot(
            name=self.name,
            member_ids=tuple(self.members),
            calling=self.calling,
        )

    def patch(self, payload: Dict[str, Any], resolve_user: Callable[[Dict[str, Any]], User]) -> None:
        """Apply ``payload``; ``resolve_user`` maps a user payload to its cached ``User``."""

        if "thread_title" in payload:
            self.name = payload["thread_title"]
        if "users" in payload:
            members: Dict[str, User] = {}
            for user_payload in payload["users"] or []:
                user = resolve_user(user_payload)
                members[user.id] = user
            self.members = members
        if "admin_user_ids" in payload:
            self.admin_user_ids = {str(uid) for uid in payload["admin_user_ids"] or []}
        if "video_call_id" in payload:
            self.calling = bool(payload["video_call_id"])
        if "pending" in payload:
            self.pending = bool(payload["pending"])
        if "is_group" in payload:
            self.is_group = bool(payload["is_group"])
        if "muted" in payload:
            self.muted = bool(payload["muted"])

    def upsert_message(self, payload: Dict[str, Any]) -> tuple[Message, bool]:
        """Patch the cached message or attach a new one. Returns ``(message, created)``."""

        message_id = str(payload["item_id"])
        existing = self.messages.get(message_id)
        if existing is not None:
            existing.patch(payload)
            return existing, False
        message = Message.from_payload(self.id, payload)
        self.messages[message.id] = message
        return message, True

    def detach_message(self, message_id: str) -> Optional[Message]:
        return self.messages.pop(message_id, None)


__all__ = [
    "Chat",
    "ChatSnapshot",
    "Like",
    "Message",
    "MessageSnapshot",
    "SYSTEM_ITEM_TYPES",
    "User",
    "user_id_of",
]
