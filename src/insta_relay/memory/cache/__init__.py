"""
In-memory entity cache package.

Modules
=======

``models``
    Dataclasses for :class:`User`, :class:`Chat` and :class:`Message`, their
    payload patching rules, and the frozen snapshots used for diffing.
``store``
    Defines :class:`~insta_relay.memory.cache.store.EntityStore`, the
    create-or-patch cache that owns every user and chat for the session.
"""

from .models import Chat, ChatSnapshot, Like, Message, MessageSnapshot, User
from .store import EntityStore

__all__ = ["Chat", "ChatSnapshot", "EntityStore", "Like", "Message", "MessageSnapshot", "User"]
