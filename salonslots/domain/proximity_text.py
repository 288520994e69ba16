"""
Human-readable descriptions of how far a slot is from the requested time.
"""

from typing import Optional

# Entries further away than this from the target time get no minute text.
PROXIMITY_TEXT_WINDOW_MINUTES = 180


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def describe_minute_offset(diff_minutes: int) -> str:
    """
    Describe a signed minute offset from the target time.

    Example: -60 -> "1 hour earlier", 30 -> "30 minutes later",
    90 -> "1 hour 30 minutes later".
    """
    if diff_minutes == 0:
        return "same time"

    hours, minutes = divmod(abs(diff_minutes), 60)
    parts = []
    if hours:
        parts.append(_plural(hours, "hour", "hours"))
    if minutes:
        parts.append(_plural(minutes, "minute", "minutes"))

    direction = "earlier" if diff_minutes < 0 else "later"
    return f"{' '.join(parts)} {direction}"


def describe_day_offset(day_diff: int) -> Optional[str]:
    """
    Describe a signed day offset from the target date.

    Returns None for offsets more than a week ahead or more than a day back.
    """
    if day_diff == 0:
        return "Today"
    if day_diff == 1:
        return "Tomorrow"
    if day_diff == -1:
        return "Yesterday"
    if day_diff == 2:
        return "Day after tomorrow"
    if 0 < day_diff <= 7:
        return f"In {day_diff} days"
    return None
