"""Activity sources and intake throttling."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from .models import ActivityEvent, ActivityKind

logger = logging.getLogger(__name__)

ActivityListener = Callable[[ActivityEvent], None]


class ActivitySource(Protocol):
    """Stream of raw interaction notifications from the host environment."""

    def subscribe(self, listener: ActivityListener) -> None: ...

    def unsubscribe(self, listener: ActivityListener) -> None: ...


class ActivityBus:
    """In-process activity source that fans events out to subscribers."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self._listeners: list[ActivityListener] = []

    def subscribe(self, listener: ActivityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ActivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def publish(self, kind: ActivityKind | str) -> ActivityEvent:
        if not isinstance(kind, ActivityKind):
            kind = ActivityKind.parse(kind)
        event = ActivityEvent(kind=kind, timestamp=self._clock())
        for listener in list(self._listeners):
            listener(event)
        return event


class LeadingEdgeThrottle:
    """
    Admit the first call in each window and drop the rest.

    A window opens at the first admitted timestamp and lasts ``interval``
    seconds; calls inside it return False without extending it.
    """

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self._window_start: Optional[float] = None

    def admit(self, timestamp: float) -> bool:
        if self._window_start is not None and timestamp - self._window_start < self.interval:
            return False
        self._window_start = timestamp
        return True

    def reset(self) -> None:
        self._window_start = None
