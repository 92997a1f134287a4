import os

from .loader import section


class Forwarding:
    def __init__(self, config: dict | None = None) -> None:
        fwd_cfg = section(config, "discord")
        url_env = str(fwd_cfg.get("webhook_url_env", "DISCORD_WEBHOOK_URL"))

        self.DISCORD_WEBHOOK_URL: str | None = os.getenv(url_env)
        self.WEBHOOK_MAX_RETRIES: int = int(fwd_cfg.get("max_retries", os.getenv("WEBHOOK_MAX_RETRIES", "3")))
        self.WEBHOOK_RETRY_DELAY: float = float(fwd_cfg.get("retry_delay", os.getenv("WEBHOOK_RETRY_DELAY", "5")))
        self.WEBHOOK_TIMEOUT: float = float(fwd_cfg.get("timeout", os.getenv("WEBHOOK_TIMEOUT", "10")))
        self.DEFAULT_USERNAME: str = str(fwd_cfg.get("default_username", os.getenv("WEBHOOK_DEFAULT_USERNAME", "Instagram User")))

        if not self.DISCORD_WEBHOOK_URL:
            raise ValueError("Missing environment variables: DISCORD_WEBHOOK_URL")
