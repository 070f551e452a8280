# barberbook/routers/barbers_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barberbook import store
from barberbook.availability import slots_for_day
from barberbook.auth import get_current_user
from barberbook.core import to_minutes
from barberbook.db import get_session
from barberbook.deps import require_role
from barberbook.earnings import period_start, summarize_earnings
from barberbook.models import Appointment, BlockedDay, Service, User, WorkingHour
from barberbook.schemas import (
    AppointmentPublic,
    AvailabilityResponse,
    BlockedDayCreate,
    BlockedDayPublic,
    EarningsPublic,
    ServiceCreate,
    ServicePublic,
    UserPublic,
    WorkingHourIn,
    WorkingHourPublic,
)

router = APIRouter(
    prefix="/barbers",
    tags=["barbers"],
)


@router.get("", response_model=List[UserPublic])
def list_barbers(session: Session = Depends(get_session)):
    return session.exec(select(User).where(User.role == "barber").order_by(User.name)).all()


@router.put("/me/hours/{day_of_week}", response_model=WorkingHourPublic)
def set_working_hour(
    hours: WorkingHourIn,
    day_of_week: int = Path(ge=0, le=6),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")  # only barbers can edit
    intervals = sorted(hours.intervals, key=lambda i: to_minutes(i.start))

    # Declared window defaults to the span of the shifts
    start_time = hours.start_time or (intervals[0].start if intervals else "08:00")
    end_time = hours.end_time or (max(i.end for i in intervals) if intervals else "18:00")
    if to_minutes(start_time) >= to_minutes(end_time):
        raise HTTPException(status_code=422, detail="start_time must be before end_time")
    if hours.active and not intervals:
        raise HTTPException(status_code=422, detail="An active day needs at least one interval")

    # DB upsert: one row per barber and weekday
    db_hour = store.get_working_hour(session, current_user["id"], day_of_week)
    if db_hour is None:
        db_hour = WorkingHour(barber_id=current_user["id"], day_of_week=day_of_week, start_time=start_time, end_time=end_time)
    db_hour.active = hours.active
    db_hour.start_time = start_time
    db_hour.end_time = end_time
    db_hour.intervals = [i.model_dump() for i in intervals]

    session.add(db_hour)
    session.commit()
    session.refresh(db_hour)
    return db_hour


@router.get("/me/hours", response_model=List[WorkingHourPublic])
def get_my_hours(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")
    return session.exec(
        select(WorkingHour)
        .where(WorkingHour.barber_id == current_user["id"])
        .order_by(WorkingHour.day_of_week)
    ).all()


@router.post("/me/blocked-days", response_model=BlockedDayPublic, status_code=201)
def block_day(
    block: BlockedDayCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")

    db_block = BlockedDay(
        barber_id=current_user["id"],
        blocked_date=block.blocked_date,
        reason=block.reason,
    )
    session.add(db_block)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Date already blocked")

    session.refresh(db_block)
    return db_block


@router.get("/me/blocked-days", response_model=List[BlockedDayPublic])
def list_blocked_days(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")
    return session.exec(
        select(BlockedDay)
        .where(BlockedDay.barber_id == current_user["id"])
        .order_by(BlockedDay.blocked_date)
    ).all()


@router.delete("/me/blocked-days/{block_id}", status_code=204)
def unblock_day(
    block_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")
    db_block = session.get(BlockedDay, block_id)
    if db_block is None or db_block.barber_id != current_user["id"]:
        raise HTTPException(status_code=404, detail="Blocked day not found")

    session.delete(db_block)
    session.commit()
    return Response(status_code=204)


@router.post("/me/services", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")
    db_service = Service(barber_id=current_user["id"], **service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.get("/me/services", response_model=List[ServicePublic])
def list_my_services(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")
    return session.exec(select(Service).where(Service.barber_id == current_user["id"]).order_by(Service.id)).all()


@router.get("/me/appointments", response_model=List[AppointmentPublic])
def list_barber_appointments(
    status: Optional[str] = "active",
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")

    stmt = select(Appointment).where(Appointment.barber_id == current_user["id"])

    if on_date is not None:
        stmt = stmt.where(Appointment.appointment_date == on_date)

    if status == "active":
        stmt = stmt.where(Appointment.status.in_(["pending", "confirmed"]))
    elif status == "cancelled":
        stmt = stmt.where(Appointment.status.like("cancelled%"))
    elif status != "all":
        stmt = stmt.where(Appointment.status == status)

    stmt = stmt.order_by(Appointment.appointment_date, Appointment.appointment_time)

    return [AppointmentPublic.from_model(a) for a in session.exec(stmt).all()]


@router.get("/me/earnings", response_model=EarningsPublic)
def my_earnings(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "barber")
    today = date.today()

    appointments = session.exec(
        select(Appointment)
        .where(Appointment.barber_id == current_user["id"])
        .where(Appointment.appointment_date >= period_start(today))
    ).all()
    return summarize_earnings(appointments, today)


@router.get("/{barber_id}/services", response_model=List[ServicePublic])
def list_barber_services(
    barber_id: int,
    session: Session = Depends(get_session),
):
    return session.exec(select(Service).where(Service.barber_id == barber_id).order_by(Service.id)).all()


@router.get("/{barber_id}/availability", response_model=AvailabilityResponse)
def barber_availability(
    barber_id: int,
    date: date,
    service_ids: List[int] = Query(default=[]),
    duration: Optional[int] = Query(default=None, gt=0),
    session: Session = Depends(get_session),
):
    # 1) Lookup barber
    barber = session.get(User, barber_id)
    if barber is None or barber.role != "barber":
        raise HTTPException(status_code=404, detail="Barber Not Found")

    # 2) Total duration: explicit, or summed from the chosen services
    if service_ids:
        duration = sum(s.duration for s in store.get_services(session, barber_id, service_ids))
    if duration is None:
        raise HTTPException(status_code=422, detail="Provide service_ids or duration")

    # 3) Generate slots from working hours, blocked days and appointments
    available = slots_for_day(session, barber_id, date, duration)
    return {"barber_id": barber_id, "date": date, "duration": duration, "available_starts": available}
