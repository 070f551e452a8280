# barberbook/booking.py

"""
Appointment lifecycle: committing new bookings and moving appointments
between statuses.

Every commit that reserves time re-runs the conflict check while holding the
(barber, date) lock, because the slot list a client picked from may be stale.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session

from barberbook import config, notifications, store
from barberbook.availability import slots_for_day
from barberbook.core import ensure_duration, has_conflict, to_minutes
from barberbook.errors import (
    BookingError,
    InvalidBookingError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotUnavailableError,
    StoreUnavailableError,
)
from barberbook.models import Appointment, User
from barberbook.notifications import NotificationIntent
from barberbook.schemas import AppointmentStatus, BookingDraft, UserRole

logger = logging.getLogger(__name__)


class BookingEvent(str, Enum):
    confirm = "confirm"
    complete = "complete"
    cancel_by_client = "cancel_by_client"
    cancel_by_provider = "cancel_by_provider"


S = AppointmentStatus
E = BookingEvent

# Anything not listed here is an illegal transition
TRANSITIONS = {
    (S.pending, E.confirm): S.confirmed,
    (S.pending, E.complete): S.completed,
    (S.pending, E.cancel_by_client): S.cancelled_by_client,
    (S.pending, E.cancel_by_provider): S.cancelled_by_provider,
    (S.confirmed, E.complete): S.completed,
    (S.confirmed, E.cancel_by_client): S.cancelled_by_client,
    (S.confirmed, E.cancel_by_provider): S.cancelled_by_provider,
}

# Who may trigger each event
EVENT_ROLES = {
    E.confirm: UserRole.barber,
    E.complete: UserRole.barber,
    E.cancel_by_provider: UserRole.barber,
    E.cancel_by_client: UserRole.client,
}

INITIAL_STATUSES = (S.pending, S.confirmed)


@dataclass
class BookingResult:
    appointment: Appointment
    notifications: List[NotificationIntent] = field(default_factory=list)


def next_status(current, event) -> AppointmentStatus:
    """Look up the status ``event`` leads to from ``current``."""
    key = (AppointmentStatus(current), BookingEvent(event))
    if key not in TRANSITIONS:
        raise InvalidTransitionError(f"Transition not allowed: {key[0].value} + {key[1].value}")
    return TRANSITIONS[key]


def is_terminal(status) -> bool:
    return not any(current == AppointmentStatus(status) for current, _ in TRANSITIONS)


def display_name(user: dict) -> str:
    return user.get("name") or user["email"]


def client_display_name(session: Session, appointment: Appointment) -> str:
    if appointment.client_id is None:
        return appointment.guest_name or "Guest"
    client = session.get(User, appointment.client_id)
    if client is None:
        return "Client"
    return client.name or client.email


def check_participant(appointment: Appointment, actor: dict) -> UserRole:
    """The actor must be this appointment's barber or its registered client."""
    role = UserRole(actor["role"])
    if role is UserRole.barber and appointment.barber_id == actor["id"]:
        return role
    if role is UserRole.client and appointment.client_id == actor["id"]:
        return role
    raise PermissionDeniedError("Forbidden")


def _initial_status(role: UserRole, initial_status=None) -> AppointmentStatus:
    if initial_status is None:
        initial_status = config.CLIENT_BOOKING_STATUS if role is UserRole.client else config.BARBER_BOOKING_STATUS
    status = AppointmentStatus(initial_status)
    if status not in INITIAL_STATUSES:
        raise InvalidBookingError(f"A new booking cannot start as {status.value}")
    return status


def _booking_party(session: Session, draft: BookingDraft, actor: dict, role: UserRole):
    """Return (client_id, guest_name, client_name) for the booking."""
    if role is UserRole.client:
        if draft.client_id not in (None, actor["id"]) or draft.guest_name:
            raise PermissionDeniedError("Clients can only book for themselves")
        return actor["id"], None, display_name(actor)

    if draft.barber_id != actor["id"]:
        raise PermissionDeniedError("Barbers can only book into their own schedule")

    guest_name = (draft.guest_name or "").strip() or None
    if (draft.client_id is None) == (guest_name is None):
        raise InvalidBookingError("Provide either client_id or guest_name")
    if guest_name is not None:
        return None, guest_name, guest_name

    client = session.get(User, draft.client_id)
    if client is None or client.role != UserRole.client.value:
        raise InvalidBookingError(f"Client {draft.client_id} not found")
    return client.id, None, client.name or client.email


def create_booking(
    session: Session,
    draft: BookingDraft,
    actor: dict,
    initial_status=None,
    now: Optional[datetime] = None,
) -> BookingResult:
    """
    Commit a new appointment for ``draft``.

    The requested start must still be an offered slot and must not overlap any
    non-cancelled appointment at commit time; otherwise SlotUnavailableError is
    raised and nothing is written.
    """
    role = UserRole(actor["role"])
    status = _initial_status(role, initial_status)
    client_id, guest_name, client_name = _booking_party(session, draft, actor, role)

    store.get_barber(session, draft.barber_id)
    services = store.get_services(session, draft.barber_id, draft.service_ids)
    duration = ensure_duration(sum(s.duration for s in services))
    value = sum((Decimal(s.price) for s in services), Decimal("0"))
    start = to_minutes(draft.appointment_time)

    with store.day_lock(draft.barber_id, draft.appointment_date):
        try:
            store.lock_barber(session, draft.barber_id)
            windows = store.get_occupied_windows(session, draft.barber_id, draft.appointment_date)

            if has_conflict(start, duration, windows):
                raise SlotUnavailableError()
            offered = slots_for_day(
                session, draft.barber_id, draft.appointment_date, duration, now=now, windows=windows
            )
            if draft.appointment_time not in offered:
                raise SlotUnavailableError("Slot is not available on that date, choose another")

            appointment = Appointment(
                barber_id=draft.barber_id,
                client_id=client_id,
                guest_name=guest_name,
                appointment_date=draft.appointment_date,
                appointment_time=draft.appointment_time,
                value=value,
                status=status.value,
            )
            appointment.services = store.build_links(services)
            session.add(appointment)
            session.flush()  # fills appointment.id

            intents = notifications.new_booking(appointment, client_name)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.info("Booking rejected by constraint for barber=%s %s %s", draft.barber_id, draft.appointment_date, draft.appointment_time)
            raise SlotUnavailableError() from exc
        except OperationalError as exc:
            session.rollback()
            logger.error("Database unavailable while booking: %s", exc)
            raise StoreUnavailableError("Database unavailable, try again") from exc
        except BookingError as exc:
            session.rollback()
            logger.info("Booking rejected for barber=%s %s %s: %s", draft.barber_id, draft.appointment_date, draft.appointment_time, exc.detail)
            raise

    session.refresh(appointment)
    logger.info(
        "Booked appointment %s barber=%s %s %s (%s min, %s)",
        appointment.id, appointment.barber_id, appointment.appointment_date,
        appointment.appointment_time, duration, appointment.status,
    )
    return BookingResult(appointment=appointment, notifications=intents)


def _transition_intents(session: Session, appointment: Appointment, event: BookingEvent, actor: dict):
    if event is E.complete:
        return notifications.completed(appointment, display_name(actor))
    if event is E.cancel_by_client:
        return notifications.cancelled_by_client(appointment, client_display_name(session, appointment))
    if event is E.cancel_by_provider:
        return notifications.cancelled_by_provider(appointment)
    return []


def apply_event(session: Session, appointment_id: int, event, actor: dict) -> BookingResult:
    """Move an appointment along the lifecycle; terminal statuses never change."""
    event = BookingEvent(event)
    try:
        appointment = store.get_appointment(session, appointment_id, for_update=True)
        role = check_participant(appointment, actor)
        if role is not EVENT_ROLES[event]:
            raise PermissionDeniedError(f"A {role.value} cannot {event.value.replace('_', ' ')}")

        previous = appointment.status
        appointment.status = next_status(appointment.status, event).value
        intents = _transition_intents(session, appointment, event, actor)

        session.add(appointment)
        session.commit()
    except OperationalError as exc:
        session.rollback()
        logger.error("Database unavailable while updating appointment %s: %s", appointment_id, exc)
        raise StoreUnavailableError("Database unavailable, try again") from exc
    except BookingError:
        session.rollback()
        raise

    session.refresh(appointment)
    logger.info("Appointment %s: %s -> %s (%s)", appointment.id, previous, appointment.status, event.value)
    return BookingResult(appointment=appointment, notifications=intents)
