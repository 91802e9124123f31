from __future__ import annotations

import pytest

from session_watchdog.activity import ActivityBus, LeadingEdgeThrottle
from session_watchdog.models import ActivityKind


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("mousedown", ActivityKind.POINTER),
        ("mousemove", ActivityKind.POINTER),
        ("keypress", ActivityKind.KEY),
        ("scroll", ActivityKind.SCROLL),
        ("touchstart", ActivityKind.TOUCH),
        ("click", ActivityKind.CLICK),
        (" Touch ", ActivityKind.TOUCH),
    ],
)
def test_parse_maps_browser_events(name, expected):
    assert ActivityKind.parse(name) is expected


def test_parse_rejects_unknown_events():
    with pytest.raises(ValueError, match="Unknown activity event"):
        ActivityKind.parse("hover")


def test_throttle_admits_leading_edge_only():
    throttle = LeadingEdgeThrottle(1.0)

    assert throttle.admit(5.0)
    assert not throttle.admit(5.4)
    assert not throttle.admit(5.99)
    assert throttle.admit(6.0)
    assert not throttle.admit(6.5)


def test_throttle_reset_reopens_window():
    throttle = LeadingEdgeThrottle(1.0)
    throttle.admit(1.0)
    throttle.reset()
    assert throttle.admit(1.1)


def test_bus_stamps_events_with_clock_and_fans_out():
    now = [12.5]
    bus = ActivityBus(lambda: now[0])
    seen_a, seen_b = [], []
    bus.subscribe(seen_a.append)
    bus.subscribe(seen_b.append)

    event = bus.publish("keydown")

    assert event.kind is ActivityKind.KEY
    assert event.timestamp == 12.5
    assert seen_a == seen_b == [event]


def test_bus_subscription_is_idempotent():
    bus = ActivityBus(lambda: 0.0)
    seen = []
    bus.subscribe(seen.append)
    bus.subscribe(seen.append)
    assert bus.subscriber_count == 1

    bus.unsubscribe(seen.append)
    bus.unsubscribe(seen.append)
    bus.publish(ActivityKind.CLICK)

    assert bus.subscriber_count == 0
    assert seen == []
