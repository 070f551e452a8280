# barberbook/earnings.py

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from barberbook.schemas import AppointmentStatus

SCHEDULED = (AppointmentStatus.pending.value, AppointmentStatus.confirmed.value)


@dataclass(frozen=True)
class EarningsSummary:
    today: Decimal
    week: Decimal
    month: Decimal
    scheduled_count: int


def period_start(today: date) -> date:
    """Earliest date the summary looks at: start of the week or the month, whichever is first."""
    return min(today - timedelta(days=today.weekday()), today.replace(day=1))


def summarize_earnings(appointments: Iterable, today: date) -> EarningsSummary:
    """
    Only completed appointments count as earned. Pending and confirmed ones
    count as scheduled; cancelled ones count nowhere.
    """
    week_start = today - timedelta(days=today.weekday())
    week_end = week_start + timedelta(days=7)

    earned_today = earned_week = earned_month = Decimal("0")
    scheduled = 0
    for appointment in appointments:
        if appointment.status in SCHEDULED:
            scheduled += 1
            continue
        if appointment.status != AppointmentStatus.completed.value:
            continue

        value = Decimal(appointment.value or 0)
        day = appointment.appointment_date
        if day == today:
            earned_today += value
        if week_start <= day < week_end:
            earned_week += value
        if (day.year, day.month) == (today.year, today.month):
            earned_month += value

    return EarningsSummary(today=earned_today, week=earned_week, month=earned_month, scheduled_count=scheduled)
