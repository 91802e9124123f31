"""Inactivity watchdog that warns before and then ends an idle session."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from .activity import ActivitySource, LeadingEdgeThrottle
from .config import WatchdogSettings
from .models import ActivityEvent, Phase, WatchdogState
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

SignOut = Callable[[], Awaitable[Any]]
Navigate = Callable[[str], None]
StateListener = Callable[[WatchdogState], None]


@dataclass(slots=True)
class _Epoch:
    """Timer handles armed between two activity resets."""

    started_at: float
    warning_timer: Optional[TimerHandle] = None
    expiry_timer: Optional[TimerHandle] = None
    ticker: Optional[TimerHandle] = None

    def cancel(self) -> None:
        for handle in (self.warning_timer, self.expiry_timer, self.ticker):
            if handle is not None:
                handle.cancel()
        self.warning_timer = None
        self.expiry_timer = None
        self.ticker = None


class InactivityWatchdog:
    """
    Track time since the last user interaction and end the session when idle.

    The watchdog moves ``ACTIVE -> WARNING -> EXPIRED``. The warning appears
    ``session_timeout - warning_lead`` after the last accepted activity and
    carries a countdown recomputed from absolute timestamps every tick. On
    expiry the sign-out capability is awaited once, failures are logged, and
    the user is navigated to ``settings.expired_redirect`` regardless.
    Any accepted activity, or :meth:`extend`, starts a fresh epoch.
    """

    def __init__(
        self,
        settings: WatchdogSettings,
        scheduler: Scheduler,
        *,
        sign_out: SignOut,
        navigate: Navigate,
        activity_source: Optional[ActivitySource] = None,
        on_change: Optional[StateListener] = None,
    ) -> None:
        self.settings = settings
        self._scheduler = scheduler
        self._sign_out = sign_out
        self._navigate = navigate
        self._activity_source = activity_source
        self._on_change = on_change
        self._throttle = LeadingEdgeThrottle(settings.throttle_interval.total_seconds())
        self._epoch: Optional[_Epoch] = None
        self._phase = Phase.ACTIVE
        self._last_activity_at = scheduler.now()
        self._running = False
        self._torn_down = False
        self._resets = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def resets(self) -> int:
        """Number of epochs armed so far, including the first."""
        return self._resets

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def show_warning(self) -> bool:
        return self._phase is Phase.WARNING

    @property
    def time_remaining(self) -> int:
        """Whole seconds left before expiry, rounded up."""
        if self._phase is Phase.EXPIRED:
            return 0
        elapsed = self._scheduler.now() - self._last_activity_at
        remaining = self.settings.session_timeout.total_seconds() - elapsed
        return max(0, math.ceil(remaining))

    @property
    def state(self) -> WatchdogState:
        return WatchdogState(
            last_activity_at=self._last_activity_at,
            phase=self._phase,
            remaining_seconds=self.time_remaining,
        )

    def start(self) -> None:
        """Subscribe to activity and arm the first epoch."""
        if self._running or self._phase is Phase.EXPIRED:
            return
        self._running = True
        self._torn_down = False
        self._throttle.reset()
        if self._activity_source is None:
            logger.debug("No activity source available; running in timeout-only mode.")
        else:
            self._activity_source.subscribe(self._on_activity)
        self._arm_epoch()
        logger.info(
            "Watchdog started: timeout=%s warning_lead=%s",
            self.settings.session_timeout,
            self.settings.warning_lead,
        )

    def stop(self) -> None:
        """Cancel every pending timer and stop listening for activity."""
        self._torn_down = True
        if self._epoch is not None:
            self._epoch.cancel()
            self._epoch = None
        if self._running:
            self._unsubscribe()
            self._running = False
            logger.info("Watchdog stopped.")
        if self._phase is Phase.WARNING:
            self._phase = Phase.ACTIVE
            self._notify()

    def extend(self) -> None:
        """Keep the session alive, as if the user had just interacted."""
        if not self._running:
            logger.debug("Ignoring extend() on a watchdog in phase %s.", self._phase.value)
            return
        self._arm_epoch()

    def _on_activity(self, event: ActivityEvent) -> None:
        if not self._running:
            return
        if not self._throttle.admit(event.timestamp):
            return
        logger.debug("Activity (%s) reset the idle timer.", event.kind.value)
        self._arm_epoch()

    def _arm_epoch(self) -> None:
        if self._epoch is not None:
            self._epoch.cancel()

        now = self._scheduler.now()
        epoch = _Epoch(started_at=now)
        epoch.warning_timer = self._scheduler.call_later(
            self.settings.warning_delay.total_seconds(), partial(self._enter_warning, epoch)
        )
        epoch.expiry_timer = self._scheduler.call_later(
            self.settings.session_timeout.total_seconds(), partial(self._expire, epoch)
        )
        self._epoch = epoch
        self._last_activity_at = now
        self._resets += 1
        was_warning = self._phase is Phase.WARNING
        self._phase = Phase.ACTIVE
        if was_warning:
            logger.info("Session extended; warning dismissed.")
        self._notify()

    def _enter_warning(self, epoch: _Epoch) -> None:
        if epoch is not self._epoch:
            return
        self._phase = Phase.WARNING
        epoch.ticker = self._scheduler.call_repeating(
            self.settings.tick_interval.total_seconds(), partial(self._tick, epoch)
        )
        logger.info("Session idle; %d seconds until sign-out.", self.time_remaining)
        self._notify()

    def _tick(self, epoch: _Epoch) -> None:
        if epoch is not self._epoch:
            return
        if self.time_remaining <= 0 and epoch.ticker is not None:
            epoch.ticker.cancel()
            epoch.ticker = None
        self._notify()

    def _expire(self, epoch: _Epoch) -> None:
        if epoch is not self._epoch:
            return
        epoch.cancel()
        self._epoch = None
        self._phase = Phase.EXPIRED
        self._running = False
        self._unsubscribe()
        logger.warning(
            "Session expired after %s of inactivity; signing out.",
            self.settings.session_timeout,
        )
        self._notify()
        self._scheduler.spawn(self._sign_out_and_redirect())

    async def _sign_out_and_redirect(self) -> None:
        if self._torn_down:
            return
        try:
            await self._sign_out()
        except Exception:
            logger.exception("Sign-out failed; redirecting without retry.")
        if self._torn_down:
            logger.debug("Watchdog torn down during sign-out; skipping redirect.")
            return
        self._navigate(self.settings.expired_redirect)

    def _unsubscribe(self) -> None:
        if self._activity_source is not None:
            self._activity_source.unsubscribe(self._on_activity)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)
