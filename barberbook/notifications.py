# barberbook/notifications.py

"""
Notification intents produced by booking transitions.

The booking engine only decides *that* somebody should hear about a change;
``deliver`` stores the intents as ``Notification`` rows for the app to show.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from barberbook.models import Appointment, Notification

logger = logging.getLogger(__name__)


class NotificationCategory(str, Enum):
    booking = "booking"
    completion = "completion"
    cancellation = "cancellation"
    reschedule = "reschedule"


@dataclass(frozen=True)
class NotificationIntent:
    user_id: int
    appointment_id: Optional[int]
    category: NotificationCategory
    title: str
    content: str


def _when(appointment: Appointment) -> str:
    return f"{appointment.appointment_date.strftime('%d/%m')} at {appointment.appointment_time}"


def _service_names(appointment: Appointment) -> str:
    return " + ".join(link.name for link in appointment.services) or "a service"


def new_booking(appointment: Appointment, client_name: str) -> List[NotificationIntent]:
    intents = [
        NotificationIntent(
            user_id=appointment.barber_id,
            appointment_id=appointment.id,
            category=NotificationCategory.booking,
            title="New booking",
            content=f"{client_name} booked {_service_names(appointment)} for {_when(appointment)}.",
        )
    ]
    if appointment.client_id is not None:
        intents.append(
            NotificationIntent(
                user_id=appointment.client_id,
                appointment_id=appointment.id,
                category=NotificationCategory.booking,
                title="Booking confirmed",
                content=f"Your {_service_names(appointment)} is booked for {_when(appointment)}.",
            )
        )
    return intents


def completed(appointment: Appointment, barber_name: str) -> List[NotificationIntent]:
    if appointment.client_id is None:
        return []
    return [
        NotificationIntent(
            user_id=appointment.client_id,
            appointment_id=appointment.id,
            category=NotificationCategory.completion,
            title="Service completed",
            content=f"{barber_name} finished your appointment. Thanks for coming!",
        )
    ]


def cancelled_by_client(appointment: Appointment, client_name: str) -> List[NotificationIntent]:
    return [
        NotificationIntent(
            user_id=appointment.barber_id,
            appointment_id=appointment.id,
            category=NotificationCategory.cancellation,
            title="Booking cancelled",
            content=f"{client_name} cancelled the appointment on {_when(appointment)}.",
        )
    ]


def cancelled_by_provider(appointment: Appointment) -> List[NotificationIntent]:
    if appointment.client_id is None:
        logger.info("Appointment %s is a guest booking, no client to notify", appointment.id)
        return []
    return [
        NotificationIntent(
            user_id=appointment.client_id,
            appointment_id=appointment.id,
            category=NotificationCategory.cancellation,
            title="Booking cancelled",
            content=f"Unfortunately your appointment on {_when(appointment)} was cancelled by the barbershop.",
        )
    ]


def rescheduled(appointment: Appointment, by_client: bool, client_name: str) -> List[NotificationIntent]:
    intents = []
    if by_client:
        intents.append(
            NotificationIntent(
                user_id=appointment.barber_id,
                appointment_id=appointment.id,
                category=NotificationCategory.reschedule,
                title="Booking rescheduled",
                content=f"{client_name} moved their appointment to {_when(appointment)}.",
            )
        )
    if appointment.client_id is not None:
        intents.append(
            NotificationIntent(
                user_id=appointment.client_id,
                appointment_id=appointment.id,
                category=NotificationCategory.reschedule,
                title="Booking rescheduled",
                content=f"Your appointment is now on {_when(appointment)}.",
            )
        )
    return intents


def deliver(session: Session, intents: Iterable[NotificationIntent]) -> List[Notification]:
    """
    Persist intents as notification rows.

    Runs after the booking commit. A failure here is logged and does not undo
    the booking that produced the intents.
    """
    rows = [
        Notification(
            user_id=i.user_id,
            appointment_id=i.appointment_id,
            category=i.category.value,
            title=i.title,
            content=i.content,
        )
        for i in intents
    ]
    if not rows:
        return []
    session.add_all(rows)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to store %d notification(s)", len(rows))
        return []
    logger.info("Stored %d notification(s) for users %s", len(rows), sorted({r.user_id for r in rows}))
    return rows


def list_for_user(session: Session, user_id: int, limit: int = 50) -> List[Notification]:
    return list(
        session.exec(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        ).all()
    )
