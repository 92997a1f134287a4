"""Entity store holding every cached user, chat and pending chat."""

from __future__ import annotations

import logging
from typing import Any, Dict, Literal, Optional, Tuple, Union

from .models import Chat, Message, User, user_id_of

logger = logging.getLogger(__name__)

EntityKind = Literal["user", "chat"]
Entity = Union[User, Chat, Message]

_MALFORMED = (ValueError, KeyError, TypeError, AttributeError)


class EntityStore:
    """
    Create-or-patch cache keyed by entity ID.

    Messages are owned by their chat; :meth:`attach_message` is the only way
    one is inserted and :meth:`message` reads it back. An ID is inserted at
    most once; later payloads for the same ID patch the cached object in place
    so references held elsewhere stay valid.
    """

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._chats: Dict[str, Chat] = {}
        self._pending_chats: Dict[str, Chat] = {}

    # ------------------------------------------------------------------ #
    # WRITE helpers
    # ------------------------------------------------------------------ #

    def get_or_create(self, kind: EntityKind, entity_id: str, payload: Dict[str, Any], *, patch: bool = False) -> Entity:
        """Return the cached entity, building it from ``payload`` on first sight."""

        entity_id = str(entity_id)
        table = self._table(kind)
        existing = table.get(entity_id)
        if existing is not None:
            if patch:
                self.apply(existing, payload)
            return existing

        if kind == "user":
            entity: Entity = User.from_payload({**payload, "pk": entity_id})
        else:
            entity = Chat(id=entity_id)
            self.apply(entity, payload)
        table[entity_id] = entity
        logger.debug("Cached new %s %s (%d total)", kind, entity_id, len(table))
        return entity

    def apply(self, entity: Entity, payload: Dict[str, Any]) -> None:
        """Patch ``entity`` in place; the only mutation path for cached objects."""

        if isinstance(entity, Chat):
            entity.patch(payload, self._resolve_member)
            if entity.pending:
                self._pending_chats[entity.id] = entity
            else:
                self._pending_chats.pop(entity.id, None)
            for item in payload.get("items") or []:
                try:
                    self.attach_message(entity, item)
                except _MALFORMED as exc:
                    logger.debug("Skipping malformed item in chat %s: %s", entity.id, exc)
        else:
            entity.patch(payload)

    def attach_message(self, chat: Chat, payload: Dict[str, Any]) -> Tuple[Message, bool]:
        """Insert or patch a message of ``chat``. Returns ``(message, created)``."""

        message, created = chat.upsert_message(payload)
        if created:
            logger.debug("Attached message %s to chat %s", message.id, chat.id)
        return message, created

    def detach_message(self, chat: Chat, message_id: str) -> Optional[Message]:
        return chat.detach_message(str(message_id))

    def upsert_user(self, payload: Dict[str, Any]) -> User:
        return self.get_or_create("user", user_id_of(payload), payload, patch=True)

    def mark_pending(self, chat: Chat) -> None:
        chat.pending = True
        self._pending_chats[chat.id] = chat

    def _resolve_member(self, payload: Dict[str, Any]) -> User:
        return self.upsert_user(payload)

    # ------------------------------------------------------------------ #
    # READ helpers
    # ------------------------------------------------------------------ #

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        return self._table(kind).get(str(entity_id))

    def has(self, kind: EntityKind, entity_id: str) -> bool:
        return str(entity_id) in self._table(kind)

    def size(self, kind: EntityKind) -> int:
        return len(self._table(kind))

    def pending_chat(self, chat_id: str) -> Optional[Chat]:
        return self._pending_chats.get(str(chat_id))

    def message(self, chat_id: str, message_id: str) -> Optional[Message]:
        chat = self._chats.get(str(chat_id))
        if chat is None:
            return None
        return chat.messages.get(str(message_id))

    @property
    def users(self) -> Dict[str, User]:
        return dict(self._users)

    @property
    def chats(self) -> Dict[str, Chat]:
        return dict(self._chats)

    @property
    def pending_chats(self) -> Dict[str, Chat]:
        return dict(self._pending_chats)

    def _table(self, kind: EntityKind) -> Dict[str, Any]:
        if kind == "user":
            return self._users
        if kind == "chat":
            return self._chats
        raise ValueError(f"Unknown entity kind: {kind!r}")
