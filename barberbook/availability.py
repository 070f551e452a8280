# barberbook/availability.py

"""
Availability calculation: which start times a barber can offer for a date.

``get_available_slots`` is pure (no database, no clock unless ``now`` is
omitted). ``slots_for_day`` wires it to the store.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from sqlmodel import Session

from barberbook import config, store
from barberbook.core import Window, ensure_duration, has_conflict, to_minutes, to_time_string
from barberbook.errors import InvalidTimeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Shift:
    """
    A working shift inside a day, in minutes since midnight.

    Invariant: start must be before end.
    """
    start: int
    end: int

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidTimeError(
                f"Shift start {to_time_string(self.start)} must be before end {to_time_string(self.end)}"
            )

    def contains(self, start: int, end: int) -> bool:
        return start >= self.start and end <= self.end


@dataclass(frozen=True)
class DaySchedule:
    """A weekday's declared work window plus its shifts (the allow-list)."""
    start: int
    end: int
    shifts: Sequence[Shift] = field(default_factory=tuple)
    active: bool = True

    @classmethod
    def from_strings(cls, start_time: str, end_time: str, intervals: Iterable[dict], active: bool = True) -> "DaySchedule":
        shifts = tuple(Shift(to_minutes(i["start"]), to_minutes(i["end"])) for i in intervals)
        return cls(start=to_minutes(start_time), end=to_minutes(end_time), shifts=shifts, active=active)

    @classmethod
    def from_model(cls, working_hour) -> "DaySchedule":
        return cls.from_strings(
            working_hour.start_time,
            working_hour.end_time,
            working_hour.intervals or [],
            active=working_hour.active,
        )


def get_available_slots(
    target_date: date,
    duration: int,
    working_hour: Optional[DaySchedule],
    blocked_dates: Iterable[date],
    windows: Sequence[Window],
    now: Optional[datetime] = None,
    step: Optional[int] = None,
    exclude_id: Optional[int] = None,
) -> List[str]:
    """
    Return the ascending list of ``HH:mm`` start times bookable on ``target_date``.

    Args:
        target_date: Day being queried
        duration: Total minutes the booking needs (sum of its services)
        working_hour: Schedule for the date's weekday, or None if never declared
        blocked_dates: Dates the barber has blocked
        windows: Occupied windows of non-cancelled appointments on that date
        now: Current local time; defaults to ``datetime.now()``
        step: Grid step in minutes; defaults to ``config.SLOT_STEP_MINUTES``
        exclude_id: Appointment whose own window is ignored (rescheduling)

    An empty list means "nothing available", never an error.
    """
    ensure_duration(duration)
    step = step or config.SLOT_STEP_MINUTES
    now = now or datetime.now()

    if target_date in set(blocked_dates):
        return []
    if working_hour is None or not working_hour.active:
        return []
    if target_date < now.date():
        return []

    earliest = now.hour * 60 + now.minute if target_date == now.date() else 0

    slots = []
    current = working_hour.start
    while current + duration <= working_hour.end:
        slot_start = current
        slot_end = current + duration
        current += step

        if slot_start < earliest:
            continue

        if not any(shift.contains(slot_start, slot_end) for shift in working_hour.shifts):
            continue

        if has_conflict(slot_start, duration, windows, exclude_id=exclude_id):
            continue

        slots.append(to_time_string(slot_start))

    return slots


def slots_for_day(
    session: Session,
    barber_id: int,
    target_date: date,
    duration: int,
    now: Optional[datetime] = None,
    exclude_id: Optional[int] = None,
    windows: Optional[Sequence[Window]] = None,
) -> List[str]:
    """Read the barber's configuration for ``target_date`` and compute its slots."""
    ensure_duration(duration)
    working_hour = store.get_working_hour(session, barber_id, target_date.weekday())
    schedule = DaySchedule.from_model(working_hour) if working_hour is not None else None
    blocked = [b.blocked_date for b in store.get_blocked_days(session, barber_id, target_date)]
    if windows is None:
        windows = store.get_occupied_windows(session, barber_id, target_date)

    slots = get_available_slots(
        target_date,
        duration,
        schedule,
        blocked,
        windows,
        now=now,
        exclude_id=exclude_id,
    )
    logger.debug("barber=%s date=%s duration=%s -> %d slots", barber_id, target_date, duration, len(slots))
    return slots
