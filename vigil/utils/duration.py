"""
Duration Formatting
===================

Usage:
    from vigil.utils.duration import format_duration

    display = format_duration(131400)  # "1d 12h 30m"
    display = format_duration(45, show_seconds=True)  # "45s"

Author: حَـــــنَّـــــا
Server: discord.gg/syria
"""

from typing import Optional


# =============================================================================
# Time Constants
# =============================================================================

SECONDS_PER_WEEK = 604800
SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60

_UNITS = (
    ("w", SECONDS_PER_WEEK),
    ("d", SECONDS_PER_DAY),
    ("h", SECONDS_PER_HOUR),
    ("m", SECONDS_PER_MINUTE),
    ("s", 1),
)


def format_duration(
    seconds: Optional[int],
    max_units: int = 3,
    show_seconds: bool = False,
) -> str:
    """
    Format seconds into a human-readable duration string.

    Examples:
        >>> format_duration(None)
        "Permanent"
        >>> format_duration(3661)
        "1h 1m"
        >>> format_duration(45)
        "< 1m"
    """
    if seconds is None:
        return "Permanent"

    if seconds <= 0:
        return "0s" if show_seconds else "0m"

    if seconds < SECONDS_PER_MINUTE and not show_seconds:
        return "< 1m"

    parts = []
    remaining = seconds
    for suffix, size in _UNITS:
        if suffix == "s" and not show_seconds:
            break
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count}{suffix}")
        if len(parts) >= max_units:
            break

    return " ".join(parts)


__all__ = [
    "SECONDS_PER_WEEK",
    "SECONDS_PER_DAY",
    "SECONDS_PER_HOUR",
    "SECONDS_PER_MINUTE",
    "format_duration",
]
