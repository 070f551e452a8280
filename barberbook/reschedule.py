# barberbook/reschedule.py

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session

from barberbook import notifications, store
from barberbook.availability import slots_for_day
from barberbook.booking import BookingResult, check_participant, client_display_name, is_terminal
from barberbook.core import ensure_duration, has_conflict, to_minutes
from barberbook.errors import (
    BookingError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotUnavailableError,
    StoreUnavailableError,
)
from barberbook.schemas import AppointmentStatus, UserRole

logger = logging.getLogger(__name__)


def reschedule_appointment(
    session: Session,
    appointment_id: int,
    actor: dict,
    new_date: date,
    new_time: str,
    barber_id: Optional[int] = None,
    service_ids: Optional[Sequence[int]] = None,
    now: Optional[datetime] = None,
) -> BookingResult:
    """
    Move an appointment to a new date/time (and optionally barber and services).

    The conflict check runs against the target day with the appointment's own
    window excluded. Clients must land on an offered slot; barbers may place
    the appointment anywhere in their own schedule that does not overlap another
    booking; only clients may move to a different barber. On success
    the status resets to confirmed and ``service_ids`` replace the current
    services. On failure the appointment is left exactly as it was.
    """
    start = to_minutes(new_time)
    current = store.get_appointment(session, appointment_id)
    role = check_participant(current, actor)
    if is_terminal(current.status):
        raise InvalidTransitionError(f"Cannot reschedule a {current.status} appointment")

    target_barber = barber_id or current.barber_id
    if role is UserRole.barber and target_barber != actor["id"]:
        raise PermissionDeniedError("Barbers can only move appointments within their own schedule")
    store.get_barber(session, target_barber)
    services = store.get_services(session, target_barber, service_ids) if service_ids is not None else None
    if services is not None:
        duration = sum(s.duration for s in services)
    else:
        duration = store.resolve_duration(current)
    ensure_duration(duration)

    with store.day_lock(target_barber, new_date):
        try:
            store.lock_barber(session, target_barber)
            appointment = store.get_appointment(session, appointment_id, for_update=True)
            if is_terminal(appointment.status):
                raise InvalidTransitionError(f"Cannot reschedule a {appointment.status} appointment")

            windows = store.get_occupied_windows(session, target_barber, new_date, exclude_id=appointment.id)
            if has_conflict(start, duration, windows, exclude_id=appointment.id):
                raise SlotUnavailableError()
            if role is UserRole.client:
                offered = slots_for_day(
                    session, target_barber, new_date, duration, now=now,
                    exclude_id=appointment.id, windows=windows,
                )
                if new_time not in offered:
                    raise SlotUnavailableError("Slot is not available on that date, choose another")

            previous = (appointment.barber_id, appointment.appointment_date, appointment.appointment_time)
            appointment.barber_id = target_barber
            appointment.appointment_date = new_date
            appointment.appointment_time = new_time
            appointment.status = AppointmentStatus.confirmed.value
            if services is not None:
                appointment.services = store.build_links(services)
                appointment.value = sum((Decimal(s.price) for s in services), Decimal("0"))

            session.add(appointment)
            session.flush()

            intents = notifications.rescheduled(
                appointment,
                by_client=role is UserRole.client,
                client_name=client_display_name(session, appointment),
            )
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise SlotUnavailableError() from exc
        except OperationalError as exc:
            session.rollback()
            logger.error("Database unavailable while rescheduling appointment %s: %s", appointment_id, exc)
            raise StoreUnavailableError("Database unavailable, try again") from exc
        except BookingError as exc:
            session.rollback()
            logger.info("Reschedule of appointment %s rejected: %s", appointment_id, exc.detail)
            raise

    session.refresh(appointment)
    logger.info(
        "Rescheduled appointment %s from barber=%s %s %s to barber=%s %s %s",
        appointment.id, *previous,
        appointment.barber_id, appointment.appointment_date, appointment.appointment_time,
    )
    return BookingResult(appointment=appointment, notifications=intents)
