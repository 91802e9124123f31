"""Configuration models and helpers for the session watchdog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


class WatchdogConfigError(ValueError):
    """Raised when watchdog intervals cannot produce a usable timeline."""


@dataclass(slots=True, frozen=True)
class WatchdogSettings:
    """Runtime configuration for the inactivity watchdog."""

    session_timeout: timedelta = timedelta(minutes=30)
    warning_lead: timedelta = timedelta(minutes=5)
    throttle_interval: timedelta = timedelta(seconds=1)
    tick_interval: timedelta = timedelta(seconds=1)
    expired_redirect: str = "/login?session=expired"

    def __post_init__(self) -> None:
        for name in ("session_timeout", "warning_lead", "throttle_interval", "tick_interval"):
            if getattr(self, name) <= timedelta(0):
                raise WatchdogConfigError(f"{name} must be positive")
        if self.warning_lead >= self.session_timeout:
            raise WatchdogConfigError(
                "warning_lead must be shorter than session_timeout "
                f"({self.warning_lead} >= {self.session_timeout})"
            )

    @property
    def warning_delay(self) -> timedelta:
        """Idle time after which the countdown warning appears."""
        return self.session_timeout - self.warning_lead

    @classmethod
    def from_intervals(
        cls,
        timeout_minutes: float,
        warning_minutes: float,
        throttle_seconds: float | None = None,
    ) -> "WatchdogSettings":
        throttle = throttle_seconds if throttle_seconds is not None else 1.0
        return cls(
            session_timeout=timedelta(minutes=timeout_minutes),
            warning_lead=timedelta(minutes=warning_minutes),
            throttle_interval=timedelta(seconds=throttle),
        )
