from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from session_watchdog.config import WatchdogSettings
from session_watchdog.models import Phase
from session_watchdog.scheduler import AsyncioScheduler, VirtualScheduler
from session_watchdog.watchdog import InactivityWatchdog


def test_virtual_scheduler_fires_in_deadline_order():
    scheduler = VirtualScheduler()
    fired = []
    scheduler.call_later(5, lambda: fired.append(("b", scheduler.now())))
    scheduler.call_later(2, lambda: fired.append(("a", scheduler.now())))
    scheduler.call_later(5, lambda: fired.append(("c", scheduler.now())))

    scheduler.advance(4)
    assert fired == [("a", 2)]
    scheduler.advance(1)
    assert fired == [("a", 2), ("b", 5), ("c", 5)]
    assert scheduler.now() == 5


def test_virtual_scheduler_skips_cancelled_timers():
    scheduler = VirtualScheduler()
    fired = []
    handle = scheduler.call_later(1, lambda: fired.append("x"))
    handle.cancel()

    scheduler.advance(2)
    assert fired == []
    assert scheduler.pending() == 0


def test_repeating_timer_until_cancelled():
    scheduler = VirtualScheduler()
    ticks = []
    handle = scheduler.call_repeating(1, lambda: ticks.append(scheduler.now()))

    scheduler.advance(3.5)
    handle.cancel()
    scheduler.advance(10)

    assert ticks == [1, 2, 3]
    assert scheduler.pending() == 0


def test_virtual_time_cannot_rewind():
    scheduler = VirtualScheduler(start=10)
    with pytest.raises(ValueError):
        scheduler.advance_to(5)


def test_asyncio_scheduler_fires_and_cancels():
    async def scenario():
        scheduler = AsyncioScheduler()
        fired = []
        scheduler.call_later(0.01, lambda: fired.append("once"))
        scheduler.call_later(0.01, lambda: fired.append("cancelled")).cancel()
        ticks = []
        ticker = scheduler.call_repeating(0.005, lambda: ticks.append(1))
        await asyncio.sleep(0.05)
        ticker.cancel()
        seen = len(ticks)
        await asyncio.sleep(0.02)
        return fired, seen, len(ticks)

    fired, seen, after = asyncio.run(scenario())
    assert fired == ["once"]
    assert seen >= 2
    assert after == seen


def test_asyncio_scheduler_logs_failed_tasks(caplog):
    async def boom():
        raise RuntimeError("boom")

    async def scenario():
        scheduler = AsyncioScheduler()
        scheduler.spawn(boom())
        await asyncio.sleep(0.01)

    with caplog.at_level(logging.ERROR, logger="session_watchdog.scheduler"):
        asyncio.run(scenario())
    assert "Background task failed." in caplog.text


def test_watchdog_expires_on_event_loop():
    settings = WatchdogSettings(
        session_timeout=timedelta(milliseconds=200),
        warning_lead=timedelta(milliseconds=100),
        tick_interval=timedelta(milliseconds=20),
    )
    redirects = []
    signed_out = []

    async def sign_out():
        signed_out.append(True)

    async def scenario():
        dog = InactivityWatchdog(
            settings,
            AsyncioScheduler(),
            sign_out=sign_out,
            navigate=redirects.append,
        )
        dog.start()
        await asyncio.sleep(0.14)
        warned = dog.show_warning
        await asyncio.sleep(0.2)
        return dog.phase, warned

    phase, warned = asyncio.run(scenario())
    assert warned
    assert phase is Phase.EXPIRED
    assert signed_out == [True]
    assert redirects == ["/login?session=expired"]


def test_stop_during_sign_out_skips_redirect():
    redirects = []
    started = []

    async def slow_sign_out():
        started.append(True)
        await asyncio.sleep(0.05)

    async def scenario():
        dog = InactivityWatchdog(
            WatchdogSettings(
                session_timeout=timedelta(milliseconds=40),
                warning_lead=timedelta(milliseconds=20),
            ),
            AsyncioScheduler(),
            sign_out=slow_sign_out,
            navigate=redirects.append,
        )
        dog.start()
        while not started:
            await asyncio.sleep(0.005)
        dog.stop()
        await asyncio.sleep(0.1)
        return dog.phase

    phase = asyncio.run(asyncio.wait_for(scenario(), timeout=5))
    assert phase is Phase.EXPIRED
    assert started == [True]
    assert redirects == []
