"""Replay a scripted activity timeline against a watchdog on virtual time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .activity import ActivityBus
from .config import WatchdogSettings
from .models import ActivityKind, Phase, WatchdogState
from .scheduler import VirtualScheduler
from .watchdog import InactivityWatchdog

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimelineEntry:
    at: float
    event: str
    remaining_seconds: int = 0
    detail: str = ""


def simulate(
    settings: WatchdogSettings,
    *,
    until: float,
    activity_at: Iterable[float] = (),
    extend_at: Iterable[float] = (),
    fail_sign_out: bool = False,
) -> list[TimelineEntry]:
    """Run a watchdog from t=0 to ``until`` seconds and record what happened."""
    scheduler = VirtualScheduler()
    bus = ActivityBus(scheduler.now)
    entries: list[TimelineEntry] = []
    previous_phase: list[Phase] = []

    def on_change(state: WatchdogState) -> None:
        now = scheduler.now()
        last = previous_phase[-1] if previous_phase else None
        if state.phase is Phase.ACTIVE:
            if last is None:
                event = "start"
            else:
                event = "reset" if watchdog.running else "stopped"
            entries.append(TimelineEntry(now, event, state.remaining_seconds))
        elif state.phase is not last:
            entries.append(TimelineEntry(now, state.phase.value, state.remaining_seconds))
        previous_phase.append(state.phase)

    async def sign_out() -> None:
        if fail_sign_out:
            entries.append(TimelineEntry(scheduler.now(), "sign-out", detail="failed"))
            raise ConnectionError("sign-out endpoint unreachable")
        entries.append(TimelineEntry(scheduler.now(), "sign-out", detail="ok"))

    def navigate(destination: str) -> None:
        entries.append(TimelineEntry(scheduler.now(), "redirect", detail=destination))

    watchdog = InactivityWatchdog(
        settings,
        scheduler,
        sign_out=sign_out,
        navigate=navigate,
        activity_source=bus,
        on_change=on_change,
    )

    script = sorted(
        [(float(t), "activity") for t in activity_at]
        + [(float(t), "extend") for t in extend_at]
    )
    watchdog.start()
    try:
        for at, action in script:
            if at > until:
                break
            scheduler.advance_to(at)
            entries.append(TimelineEntry(at, action))
            if action == "activity":
                bus.publish(ActivityKind.POINTER)
            else:
                watchdog.extend()
        scheduler.advance_to(until)
    finally:
        watchdog.stop()
    logger.debug("Simulation finished with %d entries.", len(entries))
    return entries
