import os, sys
from pathlib import Path

import pytest

# Add src/ to sys.path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

# Ensure required environment variables for the config singletons
os.environ.setdefault("INSTAGRAM_USERNAME", "relay_bot")
os.environ.setdefault("INSTAGRAM_PASSWORD", "test-password")
os.environ.setdefault("DISCORD_WEBHOOK_URL", "https://discord.com/api/webhooks/1/test-token")
os.environ.setdefault("BOOTSTRAP_SETTLE_DELAY", "0")
os.environ.setdefault("SESSION_FILE", str(Path(__file__).resolve().parent / ".session-test.json"))


@pytest.fixture
def store():
    from insta_relay.memory.cache import EntityStore

    return EntityStore()


@pytest.fixture
def bus():
    from insta_relay.events import EventBus

    return EventBus()


@pytest.fixture
def recorded(bus):
    """Every event published on ``bus``, in order."""
    from insta_relay.events import ALL_EVENTS

    events = []
    bus.subscribe(ALL_EVENTS, events.append)
    return events
