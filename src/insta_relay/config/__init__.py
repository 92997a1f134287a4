"""Application configuration"""

import logging
from dotenv import load_dotenv

from .loader import load_raw_config
from .core import Core
from .polling import Polling
from .forwarding import Forwarding

load_dotenv()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, level=logging.INFO)
logging.getLogger("instagrapi").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)

_RAW_CONFIG = load_raw_config()

core = Core(_RAW_CONFIG)
polling = Polling(_RAW_CONFIG)
forwarding = Forwarding(_RAW_CONFIG)


class Config:
    core = core
    polling = polling
    forwarding = forwarding


__all__ = ["core", "polling", "forwarding", "Config"]
