"""
Async facade over the ``instagrapi`` private API client.

``instagrapi`` is synchronous, so every call is pushed to a worker thread with
:func:`asyncio.to_thread`. Responses are returned as raw private-API
dictionaries (the shapes the cache models patch from) and library exceptions
are translated into :mod:`insta_relay.clients.errors`.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from instagrapi import Client as IgClient
from instagrapi.exceptions import (
    BadPassword,
    ChallengeRequired,
    ClientError,
    ClientNotFoundError,
    ClientThrottledError,
    DirectThreadNotFound,
    FeedbackRequired,
    LoginRequired,
    PleaseWaitFewMinutes,
    PrivateError,
    RateLimitError,
    TwoFactorRequired,
    UserNotFound,
)

from .errors import AuthenticationError, FetchError, NotFoundError, RateLimitedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_INBOX_PARAMS = {
    "visual_message_return_type": "unseen",
    "thread_message_limit": "10",
    "persistentBadging": "true",
    "limit": "20",
}

_RATE_LIMITED = (PleaseWaitFewMinutes, RateLimitError, ClientThrottledError, FeedbackRequired)
_AUTH_FAILED = (BadPassword, ChallengeRequired, TwoFactorRequired, LoginRequired)
_NOT_FOUND = (UserNotFound, DirectThreadNotFound, ClientNotFoundError)


def translate_error(exc: Exception) -> Exception:
    """Map an ``instagrapi`` exception onto this package's taxonomy."""

    if isinstance(exc, _RATE_LIMITED):
        return RateLimitedError(str(exc) or RateLimitedError().args[0])
    if isinstance(exc, _AUTH_FAILED):
        return AuthenticationError(str(exc) or type(exc).__name__)
    if isinstance(exc, _NOT_FOUND):
        return NotFoundError(str(exc) or type(exc).__name__)
    if isinstance(exc, (ClientError, PrivateError)):
        return FetchError(str(exc) or type(exc).__name__)
    return exc


class InstagramGateway:
    """Opaque request/response collaborator used by :class:`InstaClient`."""

    def __init__(self, client_factory: Callable[[], Any] = IgClient) -> None:
        self._client_factory = client_factory
        self._ig: Any = None

    @property
    def user_id(self) -> Optional[str]:
        if self._ig is None or getattr(self._ig, "user_id", None) is None:
            return None
        return str(self._ig.user_id)

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(functools.partial(fn, *args, **kwargs))
        except Exception as exc:
            translated = translate_error(exc)
            if translated is exc:
                raise
            raise translated from exc

    def _require_client(self) -> Any:
        if self._ig is None:
            raise AuthenticationError("Gateway used before login()")
        return self._ig

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    async def login(self, username: str, password: str, state: Optional[Dict[str, Any]] = None) -> str:
        """Authenticate, reusing ``state`` (exported settings) when provided."""

        ig = self._client_factory()
        if state:
            ig.set_settings(state)
        await self._call(ig.login, username, password)
        self._ig = ig
        logger.info("Authenticated as %s (ID: %s)", username, self.user_id)
        return self.user_id or ""

    def export_state(self) -> Dict[str, Any]:
        return self._require_client().get_settings()

    async def logout(self) -> None:
        await self._call(self._require_client().logout)

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    async def user_info(self, user_id: str) -> Dict[str, Any]:
        ig = self._require_client()
        response = await self._call(ig.private_request, f"users/{user_id}/info/")
        return response["user"]

    async def user_id_from_username(self, username: str) -> str:
        ig = self._require_client()
        return str(await self._call(ig.user_id_from_username, username))

    async def thread(self, thread_id: str) -> Dict[str, Any]:
        ig = self._require_client()
        response = await self._call(
            ig.private_request,
            f"direct_v2/threads/{thread_id}/",
            params={"visual_message_return_type": "unseen", "direction": "older", "limit": "20"},
        )
        return response["thread"]

    async def inbox_threads(self) -> List[Dict[str, Any]]:
        ig = self._require_client()
        response = await self._call(ig.private_request, "direct_v2/inbox/", params=dict(_INBOX_PARAMS))
        return list((response.get("inbox") or {}).get("threads") or [])

    async def pending_threads(self) -> List[Dict[str, Any]]:
        ig = self._require_client()
        response = await self._call(ig.private_request, "direct_v2/pending_inbox/", params=dict(_INBOX_PARAMS))
        threads = list((response.get("inbox") or {}).get("threads") or [])
        for thread in threads:
            thread.setdefault("pending", True)
        return threads

    async def mark_seen(self, thread_id: str) -> None:
        ig = self._require_client()
        await self._call(ig.direct_send_seen, int(thread_id))


__all__ = ["InstagramGateway", "translate_error"]
