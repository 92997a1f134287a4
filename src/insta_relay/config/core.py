import logging
import os
from pathlib import Path

from .loader import section

logger = logging.getLogger(__name__)

_DEFAULT_SESSION_FILE = Path("data") / "instagram-session.json"


class Core:
    def __init__(self, config: dict | None = None) -> None:
        account_cfg = section(config, "account")
        bootstrap_cfg = section(config, "bootstrap")

        username_env = str(account_cfg.get("username_env", "INSTAGRAM_USERNAME"))
        password_env = str(account_cfg.get("password_env", "INSTAGRAM_PASSWORD"))

        self.INSTAGRAM_USERNAME: str | None = os.getenv(username_env)
        self.INSTAGRAM_PASSWORD: str | None = os.getenv(password_env)
        self.SESSION_FILE: str = str(
            account_cfg.get("session_file", os.getenv("SESSION_FILE", str(_DEFAULT_SESSION_FILE)))
        )

        self.LOGIN_MAX_RETRIES: int = int(bootstrap_cfg.get("login_max_retries", os.getenv("LOGIN_MAX_RETRIES", "3")))
        self.RATE_LIMIT_LOGIN_WAIT_MINUTES: int = int(
            bootstrap_cfg.get("rate_limit_login_wait_minutes", os.getenv("RATE_LIMIT_LOGIN_WAIT_MINUTES", "15"))
        )
        self.BOOTSTRAP_SETTLE_DELAY: float = float(
            bootstrap_cfg.get("settle_delay", os.getenv("BOOTSTRAP_SETTLE_DELAY", "2"))
        )
        # 0 disables the freshness check on created messages.
        self.MESSAGE_MAX_AGE: int = int(bootstrap_cfg.get("message_max_age", os.getenv("MESSAGE_MAX_AGE", "0")))

        required = [
            ("INSTAGRAM_USERNAME", self.INSTAGRAM_USERNAME),
            ("INSTAGRAM_PASSWORD", self.INSTAGRAM_PASSWORD),
        ]
        missing = [name for name, val in required if not val]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")
