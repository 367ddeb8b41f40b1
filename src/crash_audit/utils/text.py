"""Small formatting helpers for human-readable output."""

from __future__ import annotations

from datetime import timedelta

__all__ = [
    "format_duration",
    "percentage",
]

_UNITS: tuple[tuple[str, int], ...] = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
)


def format_duration(duration: timedelta) -> str:
    """Format a duration using its largest whole unit.

    Example:
        >>> format_duration(timedelta(seconds=90))
        '1 minute'
        >>> format_duration(timedelta(days=2, hours=5))
        '2 days'
    """
    secs = max(int(duration.total_seconds()), 0)
    for unit, size in _UNITS:
        if secs >= size:
            count = secs // size
            return f"{count} {unit}{'' if count == 1 else 's'}"
    return f"{secs} second{'' if secs == 1 else 's'}"


def percentage(count: int, total: int) -> float:
    """``count`` as a percentage of ``total`` (0.0 when total is 0)."""
    if total == 0:
        return 0.0
    return count / total * 100.0
