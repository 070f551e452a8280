# barberbook/store.py

"""
Reads the booking engine needs from the database, and the locks that
serialize commits per (barber, date).
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from barberbook import config
from barberbook.core import Window, to_minutes
from barberbook.errors import AppointmentNotFoundError, InvalidBookingError, UnknownDurationError
from barberbook.models import Appointment, AppointmentService, BlockedDay, Service, User, WorkingHour
from barberbook.schemas import OCCUPYING_STATUSES

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_day_locks: Dict[Tuple[int, date], threading.Lock] = {}


@contextmanager
def day_lock(barber_id: int, day: date) -> Iterator[None]:
    """
    Serialize booking commits for one barber on one date within this process.

    Callers take it after their transaction has begun, so the SQLite write
    lock is always acquired first.
    """
    key = (barber_id, day)
    with _registry_lock:
        lock = _day_locks.setdefault(key, threading.Lock())
    with lock:
        yield


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == normalize_email(email))).first()


def lock_barber(session: Session, barber_id: int) -> Optional[User]:
    """
    Take a row lock on the barber so commits from other processes queue up.

    SQLite ignores FOR UPDATE; there every transaction already holds the
    database write lock from BEGIN IMMEDIATE (see db.make_engine).
    """
    return session.exec(select(User).where(User.id == barber_id).with_for_update()).first()


def get_barber(session: Session, barber_id: int) -> User:
    barber = session.get(User, barber_id)
    if barber is None or barber.role != "barber":
        raise InvalidBookingError(f"Barber {barber_id} not found")
    return barber


def get_working_hour(session: Session, barber_id: int, day_of_week: int) -> Optional[WorkingHour]:
    return session.exec(
        select(WorkingHour)
        .where(WorkingHour.barber_id == barber_id)
        .where(WorkingHour.day_of_week == day_of_week)
    ).first()


def get_blocked_days(session: Session, barber_id: int, day: date) -> List[BlockedDay]:
    return list(
        session.exec(
            select(BlockedDay)
            .where(BlockedDay.barber_id == barber_id)
            .where(BlockedDay.blocked_date == day)
        ).all()
    )


def get_services(session: Session, barber_id: int, service_ids: Sequence[int]) -> List[Service]:
    """Load services in the requested order; every id must belong to the barber."""
    if not service_ids:
        raise InvalidBookingError("At least one service must be selected")
    found = {
        s.id: s
        for s in session.exec(
            select(Service).where(Service.barber_id == barber_id).where(Service.id.in_(set(service_ids)))
        ).all()
    }
    missing = [sid for sid in service_ids if sid not in found]
    if missing:
        raise InvalidBookingError(f"Services not offered by barber {barber_id}: {missing}")
    return [found[sid] for sid in service_ids]


def get_appointment(session: Session, appointment_id: int, for_update: bool = False) -> Appointment:
    stmt = select(Appointment).where(Appointment.id == appointment_id)
    if for_update:
        # populate_existing: an instance already in the session is reloaded from the locked row
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    appointment = session.exec(stmt).first()
    if appointment is None:
        raise AppointmentNotFoundError(appointment_id)
    return appointment


def resolve_duration(appointment: Appointment) -> int:
    """
    Minutes reserved by an appointment: the sum of its linked services.

    Rows without duration data use DEFAULT_SERVICE_DURATION_MINUTES when it is
    configured; otherwise they are reported as a data-integrity error.
    """
    durations = [link.duration for link in appointment.services if link.duration]
    if durations:
        return sum(durations)
    fallback = config.DEFAULT_SERVICE_DURATION_MINUTES
    if fallback:
        logger.warning("Appointment %s has no service durations, assuming %s minutes", appointment.id, fallback)
        return fallback
    raise UnknownDurationError(f"Appointment {appointment.id} has no service durations")


def get_occupied_windows(
    session: Session,
    barber_id: int,
    day: date,
    exclude_id: Optional[int] = None,
) -> List[Window]:
    """Windows of every non-cancelled appointment the barber has on ``day``."""
    stmt = (
        select(Appointment)
        .where(Appointment.barber_id == barber_id)
        .where(Appointment.appointment_date == day)
        .where(Appointment.status.in_([s.value for s in OCCUPYING_STATUSES]))
        .order_by(Appointment.appointment_time)
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)

    windows = []
    for appointment in session.exec(stmt).all():
        windows.append(
            Window(
                appointment_id=appointment.id,
                start=to_minutes(appointment.appointment_time),
                duration=resolve_duration(appointment),
            )
        )
    return windows


def build_links(services: Sequence[Service]) -> List[AppointmentService]:
    return [
        AppointmentService(service_id=s.id, name=s.name, duration=s.duration, price=s.price)
        for s in services
    ]
