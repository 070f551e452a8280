# barberbook/core.py

"""
Time arithmetic and the overlap predicate shared by slot generation and the
commit-time conflict check.

All values are local wall-clock minutes since midnight; no timezone handling.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from barberbook.errors import InvalidDurationError, InvalidTimeError

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")


def to_minutes(value: str) -> int:
    """Convert an ``HH:mm`` string to minutes since midnight."""
    if not isinstance(value, str):
        raise InvalidTimeError(f"Time must be a 'HH:mm' string, got {value!r}")
    match = _TIME_RE.fullmatch(value)
    if match is None:
        raise InvalidTimeError(f"Time must be formatted as 'HH:mm', got {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def to_time_string(minutes: int) -> str:
    """Convert minutes since midnight back to ``HH:mm``."""
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeError(f"Minutes must be an integer, got {minutes!r}")
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeError(f"Minutes must be between 0 and {MINUTES_PER_DAY - 1}, got {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def ensure_duration(duration: int) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise InvalidDurationError(f"Duration must be a positive number of minutes, got {duration!r}")
    return duration


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """Half-open overlap test: ``[start_a, end_a)`` against ``[start_b, end_b)``."""
    return start_a < end_b and end_a > start_b


@dataclass(frozen=True)
class Window:
    """
    Time occupied by a non-cancelled appointment on one day.

    Invariant: duration is positive.
    """
    appointment_id: Optional[int]
    start: int
    duration: int

    def __post_init__(self):
        ensure_duration(self.duration)

    @property
    def end(self) -> int:
        return self.start + self.duration


def has_conflict(
    start: int,
    duration: int,
    windows: Iterable[Window],
    exclude_id: Optional[int] = None,
) -> bool:
    """
    Return True if ``[start, start+duration)`` overlaps any occupied window.

    The window belonging to ``exclude_id`` is ignored, so an appointment being
    moved never collides with its own current position.
    """
    ensure_duration(duration)
    end = start + duration
    for window in windows:
        if exclude_id is not None and window.appointment_id == exclude_id:
            continue
        if overlaps(start, end, window.start, window.end):
            return True
    return False
