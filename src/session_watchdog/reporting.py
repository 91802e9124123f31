"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Iterable

from .simulation import TimelineEntry


class TimelinePrinter:
    """Render a simulated watchdog timeline in the console."""

    def print_timeline(self, entries: Iterable[TimelineEntry]) -> None:
        entries = list(entries)
        if not entries:
            print("No transitions recorded.")
            return

        print(f"{'Offset':<10} {'Event':<12} Detail")
        print("-" * 40)
        for entry in entries:
            detail = entry.detail
            if entry.event == "warning":
                detail = f"{format_countdown(entry.remaining_seconds)} remaining"
            print(f"{format_duration(entry.at):<10} {entry.event:<12} {detail}")


def format_countdown(seconds: int) -> str:
    """Format a countdown as ``m:ss``, the way the warning dialog shows it."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
