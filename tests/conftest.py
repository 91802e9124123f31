from __future__ import annotations

from typing import Optional

import pytest

from session_watchdog.activity import ActivityBus
from session_watchdog.config import WatchdogSettings
from session_watchdog.models import WatchdogState
from session_watchdog.scheduler import VirtualScheduler
from session_watchdog.watchdog import InactivityWatchdog


class SessionRecorder:
    """Stands in for the sign-out and navigation capabilities."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sign_outs = 0
        self.redirects: list[str] = []

    async def sign_out(self) -> None:
        self.sign_outs += 1
        if self.fail:
            raise ConnectionError("network down")

    def navigate(self, destination: str) -> None:
        self.redirects.append(destination)


@pytest.fixture
def settings() -> WatchdogSettings:
    return WatchdogSettings()


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def bus(scheduler: VirtualScheduler) -> ActivityBus:
    return ActivityBus(scheduler.now)


@pytest.fixture
def recorder() -> SessionRecorder:
    return SessionRecorder()


@pytest.fixture
def failing_recorder() -> SessionRecorder:
    return SessionRecorder(fail=True)


@pytest.fixture
def states() -> list[WatchdogState]:
    return []


@pytest.fixture
def watchdog(settings, scheduler, bus, recorder, states) -> InactivityWatchdog:
    dog = InactivityWatchdog(
        settings,
        scheduler,
        sign_out=recorder.sign_out,
        navigate=recorder.navigate,
        activity_source=bus,
        on_change=states.append,
    )
    dog.start()
    yield dog
    dog.stop()


@pytest.fixture
def build_watchdog(scheduler):
    """Factory for watchdogs with custom settings, recorder or source."""
    built: list[InactivityWatchdog] = []

    def build(
        settings: WatchdogSettings,
        recorder: SessionRecorder,
        bus: Optional[ActivityBus] = None,
    ) -> InactivityWatchdog:
        dog = InactivityWatchdog(
            settings,
            scheduler,
            sign_out=recorder.sign_out,
            navigate=recorder.navigate,
            activity_source=bus,
        )
        dog.start()
        built.append(dog)
        return dog

    yield build
    for dog in built:
        dog.stop()
