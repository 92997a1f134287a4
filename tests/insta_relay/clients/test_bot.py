from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from insta_relay.clients import bot
from insta_relay.clients.errors import AuthenticationError, FetchError, RateLimitedError
from insta_relay.event_hooks.fault_hook import INFO_USERNAME


def _fakes(*outcomes):
    client = SimpleNamespace(
        login=AsyncMock(side_effect=list(outcomes)),
        export_state=MagicMock(return_value={"session": "blob"}),
    )
    forwarder = SimpleNamespace(send_notice=AsyncMock(return_value=True))
    sessions = MagicMock()
    sessions.load.return_value = {"previous": True}
    return client, forwarder, sessions


@pytest.mark.asyncio
async def test_successful_login_saves_session():
    client, forwarder, sessions = _fakes(None)
    sleep = AsyncMock()

    assert await bot.connect_with_retry(client, forwarder, sessions, max_retries=3, sleep=sleep) is True

    client.login.assert_awaited_once()
    assert client.login.await_args.args[2] == {"previous": True}
    sessions.save.assert_called_once_with({"session": "blob"})
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_transient_failures_back_off_then_succeed():
    client, forwarder, sessions = _fakes(FetchError("500"), FetchError("500"), None)
    sleep = AsyncMock()

    assert await bot.connect_with_retry(client, forwarder, sessions, max_retries=3, sleep=sleep) is True

    assert [c.args[0] for c in sleep.await_args_list] == [10, 20]
    forwarder.send_notice.assert_not_awaited()


@pytest.mark.asyncio
async def test_rate_limit_notifies_and_waits(monkeypatch):
    monkeypatch.setattr(bot.core, "RATE_LIMIT_LOGIN_WAIT_MINUTES", 15)
    client, forwarder, sessions = _fakes(RateLimitedError(), None)
    sleep = AsyncMock()

    assert await bot.connect_with_retry(client, forwarder, sessions, max_retries=3, sleep=sleep) is True

    sleep.assert_awaited_once_with(15 * 60)
    username, content = forwarder.send_notice.await_args.args
    assert username == INFO_USERNAME
    assert "15 minutes" in content


@pytest.mark.asyncio
async def test_auth_failure_clears_session_and_gives_up():
    client, forwarder, sessions = _fakes(AuthenticationError("bad"), AuthenticationError("bad"))
    sleep = AsyncMock()

    assert await bot.connect_with_retry(client, forwarder, sessions, max_retries=2, sleep=sleep) is False

    assert sessions.clear.call_count == 2
    sessions.save.assert_not_called()
    assert [c.args[0] for c in sleep.await_args_list] == [10]


def test_register_hooks_subscribes_pipeline_events(bus):
    client = SimpleNamespace(poller=None, on=bus.on)
    supervisor = bot.register_hooks(client, SimpleNamespace())

    assert supervisor.error_count == 0
    for kind in ("message_create", "error", "connected"):
        assert bus._handlers[kind]
