# barberbook/routers/appointments_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barberbook import notifications
from barberbook.auth import get_current_user
from barberbook.booking import BookingEvent, apply_event, create_booking
from barberbook.db import get_session
from barberbook.deps import require_role
from barberbook.models import Appointment
from barberbook.reschedule import reschedule_appointment
from barberbook.schemas import AppointmentPublic, BookingDraft, RescheduleRequest

router = APIRouter(
    tags=["appointments"],
)


def _finish(session: Session, result) -> AppointmentPublic:
    public = AppointmentPublic.from_model(result.appointment)
    notifications.deliver(session, result.notifications)
    return public


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def client_create_appointment(
    draft: BookingDraft,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")
    return _finish(session, create_booking(session, draft, current_user))


@router.post("/barbers/me/appointments", response_model=AppointmentPublic, status_code=201)
def barber_create_appointment(
    draft: BookingDraft,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")  # walk-ins and bookings on a client's behalf
    draft = draft.model_copy(update={"barber_id": current_user["id"]})
    return _finish(session, create_booking(session, draft, current_user))


@router.patch("/appointments/{appt_id}/confirm", response_model=AppointmentPublic)
def confirm_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return _finish(session, apply_event(session, appt_id, BookingEvent.confirm, current_user))


@router.patch("/appointments/{appt_id}/complete", response_model=AppointmentPublic)
def complete_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return _finish(session, apply_event(session, appt_id, BookingEvent.complete, current_user))


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # The caller's role decides which cancelled state the appointment ends in
    if current_user["role"] == "barber":
        event = BookingEvent.cancel_by_provider
    else:
        event = BookingEvent.cancel_by_client
    return _finish(session, apply_event(session, appt_id, event, current_user))


@router.patch("/appointments/{appt_id}/reschedule", response_model=AppointmentPublic)
def reschedule(
    appt_id: int,
    request: RescheduleRequest,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    result = reschedule_appointment(
        session,
        appt_id,
        current_user,
        new_date=request.appointment_date,
        new_time=request.appointment_time,
        barber_id=request.barber_id,
        service_ids=request.service_ids,
    )
    return _finish(session, result)


@router.get("/clients/me/appointments", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[str] = "active",
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")

    if status not in ("active", "completed", "cancelled", "all"):
        raise HTTPException(status_code=422, detail="status must be 'active', 'completed', 'cancelled', or 'all'")

    stmt = select(Appointment).where(Appointment.client_id == current_user["id"])

    if status == "active":
        stmt = stmt.where(Appointment.status.in_(["pending", "confirmed"]))
    elif status == "cancelled":
        stmt = stmt.where(Appointment.status.like("cancelled%"))
    elif status == "completed":
        stmt = stmt.where(Appointment.status == "completed")

    stmt = stmt.order_by(Appointment.appointment_date, Appointment.appointment_time)

    return [AppointmentPublic.from_model(a) for a in session.exec(stmt).all()]
