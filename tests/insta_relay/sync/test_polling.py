import asyncio
import datetime
import random

import pytest

from insta_relay.config.polling import Polling
from insta_relay.events import ClientFault
from insta_relay.sync.polling import PollingScheduler


def _settings(**overrides):
    polling = {"day": {"start_hour": 7, "end_hour": 19, "min_delay": 100, "max_delay": 200},
               "night": {"min_delay": 1000, "max_delay": 2000}}
    polling.update(overrides)
    return Polling({"instarelay": {"polling": polling}})


def _at(hour):
    return lambda: datetime.datetime(2024, 1, 1, hour, 30)


async def _noop(*_):
    return None


@pytest.mark.parametrize(
    "hour,lo,hi",
    [(7, 100, 200), (12, 100, 200), (18, 100, 200), (19, 1000, 2000), (3, 1000, 2000), (6, 1000, 2000)],
)
def test_next_delay_uses_band_for_hour(bus, hour, lo, hi):
    scheduler = PollingScheduler(_noop, _noop, bus, _settings(), clock=_at(hour), rng=random.Random(4))

    delays = [scheduler.next_delay() for _ in range(50)]

    assert all(lo <= d <= hi for d in delays)


def test_fixed_band_when_min_equals_max(bus):
    settings = Polling({"instarelay": {"polling": {"day": {"min_delay": 500, "max_delay": 500}}}})
    scheduler = PollingScheduler(_noop, _noop, bus, settings, clock=_at(10))

    assert scheduler.next_delay() == 500


def test_invalid_band_is_rejected():
    with pytest.raises(ValueError):
        Polling({"instarelay": {"polling": {"night": {"min_delay": 10, "max_delay": 5}}}})


@pytest.mark.asyncio
async def test_run_once_hands_listing_to_handler(bus, recorded):
    listings = []

    async def fetch():
        return [{"thread_id": "1"}]

    async def on_snapshot(threads):
        listings.append(threads)

    scheduler = PollingScheduler(fetch, on_snapshot, bus, _settings())

    assert await scheduler.run_once() is True
    assert listings == [[{"thread_id": "1"}]]
    assert recorded == []


@pytest.mark.asyncio
async def test_failed_cycle_is_published_and_loop_keeps_going(bus, recorded):
    calls = 0
    sleeps = []
    done = asyncio.Event()

    async def fetch():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        if calls == 3:
            done.set()
        return []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        await asyncio.sleep(0)

    scheduler = PollingScheduler(
        fetch, _noop, bus, _settings(), clock=_at(10), rng=random.Random(1), sleep=fake_sleep
    )
    scheduler.start()
    await asyncio.wait_for(done.wait(), timeout=1)
    await scheduler.stop()

    assert calls >= 3
    assert isinstance(recorded[0], ClientFault)
    assert str(recorded[0].error) == "boom"
    assert recorded[0].source == "polling"
    assert all(0.1 <= s <= 0.2 for s in sleeps)
    assert not scheduler.running


@pytest.mark.asyncio
async def test_start_replaces_running_loop_and_stop_is_idempotent(bus):
    async def parked(_seconds):
        await asyncio.Event().wait()

    scheduler = PollingScheduler(_noop, _noop, bus, _settings(), sleep=parked)

    first = scheduler.start()
    second = scheduler.start()
    await asyncio.sleep(0)

    assert first.cancelled()
    assert scheduler.running

    await scheduler.stop()
    await scheduler.stop()

    assert second.done()
    assert not scheduler.running
