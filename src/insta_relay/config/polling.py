import os

from .loader import section


class Polling:
    """Inbox polling bands. Hours are 0-23, delays are milliseconds."""

    def __init__(self, config: dict | None = None) -> None:
        poll_cfg = section(config, "polling")
        day_cfg = poll_cfg.get("day", {})
        night_cfg = poll_cfg.get("night", {})

        self.DAY_START_HOUR: int = int(day_cfg.get("start_hour", os.getenv("DAY_START_HOUR", "7")))
        self.DAY_END_HOUR: int = int(day_cfg.get("end_hour", os.getenv("DAY_END_HOUR", "19")))
        self.DAY_MIN_DELAY: int = int(day_cfg.get("min_delay", os.getenv("DAY_MIN_DELAY", "5000")))
        self.DAY_MAX_DELAY: int = int(day_cfg.get("max_delay", os.getenv("DAY_MAX_DELAY", "20000")))
        self.NIGHT_MIN_DELAY: int = int(night_cfg.get("min_delay", os.getenv("NIGHT_MIN_DELAY", "30000")))
        self.NIGHT_MAX_DELAY: int = int(night_cfg.get("max_delay", os.getenv("NIGHT_MAX_DELAY", "60000")))

        self.MAX_POLLING_ERRORS: int = int(poll_cfg.get("max_errors", os.getenv("MAX_POLLING_ERRORS", "10")))
        self.POLLING_DELAY_ON_ERROR: int = int(
            poll_cfg.get("delay_on_error", os.getenv("POLLING_DELAY_ON_ERROR", "30000"))
        )
        self.RATE_LIMIT_POLL_WAIT_MINUTES: int = int(
            poll_cfg.get("rate_limit_wait_minutes", os.getenv("RATE_LIMIT_POLL_WAIT_MINUTES", "5"))
        )

        for name in ("DAY", "NIGHT"):
            lo = getattr(self, f"{name}_MIN_DELAY")
            hi = getattr(self, f"{name}_MAX_DELAY")
            if lo < 0 or hi < lo:
                raise ValueError(f"{name}_MIN_DELAY/{name}_MAX_DELAY must satisfy 0 <= min <= max (got {lo}, {hi})")
