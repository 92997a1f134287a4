"""
Parse realtime patch paths into typed locators.

The ``/ig_message_sync`` topic addresses entities with slash paths::

    /direct_v2/inbox/threads/<thread_id>                   -> ThreadPath
    /direct_v2/threads/<thread_id>/items/<item_id>         -> MessagePath
    /direct_v2/threads/<thread_id>/admin_user_ids/<user>   -> AdminPath

Anything else parses to :class:`UnknownPath` so routing stays total.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

_THREAD_RE = re.compile(r"^/direct_v2/inbox/threads/(?P<thread_id>\d+)")
_MESSAGE_RE = re.compile(r"^/direct_v2/threads/(?P<thread_id>\d+)/items/(?P<item_id>\d+)")
_ADMIN_RE = re.compile(r"^/direct_v2/threads/(?P<thread_id>\d+)/admin_user_ids/(?P<user_id>\d+)")
_ID_RE = re.compile(r"^\d+$")


@dataclass(frozen=True)
class ThreadPath:
    thread_id: str


@dataclass(frozen=True)
class MessagePath:
    thread_id: str
    item_id: str


@dataclass(frozen=True)
class AdminPath:
    thread_id: str
    user_id: str


@dataclass(frozen=True)
class UnknownPath:
    raw: str


PatchPath = Union[ThreadPath, MessagePath, AdminPath, UnknownPath]


def parse_path(path: str) -> PatchPath:
    raw = path or ""
    match = _ADMIN_RE.match(raw)
    if match:
        return AdminPath(match.group("thread_id"), match.group("user_id"))
    match = _MESSAGE_RE.match(raw)
    if match:
        return MessagePath(match.group("thread_id"), match.group("item_id"))
    match = _THREAD_RE.match(raw)
    if match:
        return ThreadPath(match.group("thread_id"))
    return UnknownPath(raw)


def is_id(query: str) -> bool:
    """Return ``True`` when ``query`` is a numeric Instagram ID rather than a username."""
    return bool(_ID_RE.match(str(query)))


__all__ = [
    "AdminPath",
    "MessagePath",
    "PatchPath",
    "ThreadPath",
    "UnknownPath",
    "is_id",
    "parse_path",
]
