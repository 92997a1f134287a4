"""Persist the gateway's exported session state between runs."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from insta_relay.config import core

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Load/save an opaque session blob as JSON.

    The blob is whatever :meth:`InstagramGateway.export_state` returns; this
    class never looks inside it.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path if path is not None else core.SESSION_FILE)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.is_file():
            logger.info("No previous session at %s; a new one will be created", self.path)
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read session file %s: %s", self.path, exc)
            return None

    def save(self, state: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(json.dumps(state), encoding="utf-8")
            os.replace(tmp, self.path)
            logger.info("Session saved to %s", self.path)
        except (OSError, TypeError) as exc:
            logger.error("Failed to save session to %s: %s", self.path, exc)

    def clear(self) -> None:
        try:
            self.path.unlink()
            logger.info("Session file %s removed", self.path)
        except FileNotFoundError:
            pass
