"""Domain models for the idle session lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Phase(str, Enum):
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"


class ActivityKind(str, Enum):
    """Coarse categories of user interaction that count as activity."""

    POINTER = "pointer"
    KEY = "key"
    SCROLL = "scroll"
    TOUCH = "touch"
    CLICK = "click"

    @classmethod
    def parse(cls, name: str) -> "ActivityKind":
        """Accept either a category name or a raw browser event name."""
        lowered = name.strip().lower()
        kind = _DOM_EVENT_KINDS.get(lowered)
        if kind is not None:
            return kind
        try:
            return cls(lowered)
        except ValueError as exc:
            raise ValueError(f"Unknown activity event: {name!r}") from exc


_DOM_EVENT_KINDS: dict[str, ActivityKind] = {
    "mousedown": ActivityKind.POINTER,
    "mousemove": ActivityKind.POINTER,
    "pointermove": ActivityKind.POINTER,
    "keypress": ActivityKind.KEY,
    "keydown": ActivityKind.KEY,
    "wheel": ActivityKind.SCROLL,
    "touchstart": ActivityKind.TOUCH,
}


@dataclass(slots=True)
class ActivityEvent:
    """A single observed interaction; consumed immediately, never stored."""

    kind: ActivityKind
    timestamp: float


@dataclass(slots=True)
class WatchdogState:
    """Snapshot of the watchdog at one instant."""

    last_activity_at: float
    phase: Phase
    remaining_seconds: int

    @property
    def show_warning(self) -> bool:
        return self.phase is Phase.WARNING
