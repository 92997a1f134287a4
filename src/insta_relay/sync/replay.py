"""Hold raw deliveries that arrive before the client is ready."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple

logger = logging.getLogger(__name__)

Dispatch = Callable[..., Awaitable[None]]


class ReplayBuffer:
    """
    FIFO of ``(source, args)`` entries captured before readiness.

    :meth:`mark_ready` is a one-way latch. :meth:`drain` replays the queue once
    in arrival order and drops it; afterwards :meth:`offer` always declines so
    callers process deliveries directly.
    """

    def __init__(self) -> None:
        self._queue: Optional[Deque[Tuple[str, Tuple[Any, ...]]]] = deque()
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def __len__(self) -> int:
        return len(self._queue) if self._queue is not None else 0

    def offer(self, source: str, *args: Any) -> bool:
        """Queue the delivery if not ready yet. Returns ``True`` when queued."""

        if self._ready or self._queue is None:
            return False
        self._queue.append((source, args))
        return True

    def mark_ready(self) -> None:
        self._ready = True

    async def drain(self, dispatch: Dispatch) -> int:
        """Replay queued entries through ``dispatch(source, *args)``; returns the count."""

        if not self._ready:
            raise RuntimeError("drain() called before mark_ready()")
        queue, self._queue = self._queue, None
        if not queue:
            return 0

        logger.info("Replaying %d update(s) received during bootstrap", len(queue))
        count = 0
        while queue:
            source, args = queue.popleft()
            try:
                await dispatch(source, *args)
            except Exception:
                logger.exception("Failed to replay %s update", source)
            count += 1
        return count
