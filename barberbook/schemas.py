# barberbook/schemas.py

from pydantic import AfterValidator, BaseModel, Field, model_validator
from enum import Enum
from datetime import datetime, date
from decimal import Decimal
from typing import Annotated, List, Optional

from barberbook.core import to_minutes


def _check_time(value: str) -> str:
    to_minutes(value)  # raises InvalidTimeError (a ValueError)
    return value


TimeString = Annotated[str, AfterValidator(_check_time)]


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    barber = "barber"
    client = "client"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled_by_client = "cancelled_by_client"
    cancelled_by_provider = "cancelled_by_provider"


# Statuses whose window still reserves time on the barber's day
OCCUPYING_STATUSES = (AppointmentStatus.pending, AppointmentStatus.confirmed, AppointmentStatus.completed)
TERMINAL_STATUSES = (
    AppointmentStatus.completed,
    AppointmentStatus.cancelled_by_client,
    AppointmentStatus.cancelled_by_provider,
)


class UserPublic(BaseModel):
    id: int
    email: str
    name: str = ""
    role: UserRole


class UserCreate(BaseModel):
    email: str
    name: str = ""
    password: str = Field(min_length=8, max_length=72)
    role: UserRole


class IntervalIn(BaseModel):
    start: TimeString
    end: TimeString

    @model_validator(mode="after")
    def validate_order(self) -> "IntervalIn":
        if to_minutes(self.start) >= to_minutes(self.end):
            raise ValueError("interval start must be before end")
        return self


class WorkingHourIn(BaseModel):
    active: bool = True
    intervals: List[IntervalIn] = Field(default_factory=list)
    start_time: Optional[TimeString] = None  # defaults to the first interval's start
    end_time: Optional[TimeString] = None  # defaults to the last interval's end


class WorkingHourPublic(BaseModel):
    day_of_week: int
    active: bool
    start_time: str
    end_time: str
    intervals: List[IntervalIn]


class BlockedDayCreate(BaseModel):
    blocked_date: date
    reason: Optional[str] = None


class BlockedDayPublic(BaseModel):
    id: int
    blocked_date: date
    reason: Optional[str] = None


class ServiceCreate(BaseModel):
    name: str
    duration: int = Field(gt=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)


class ServicePublic(BaseModel):
    id: int
    barber_id: int
    name: str
    duration: int
    price: Decimal


class BookingDraft(BaseModel):
    """
    A booking in progress, passed explicitly by the caller.

    ``client_id``/``guest_name`` only matter when a barber books on someone's
    behalf; client bookings are always made for the client themselves.
    """
    barber_id: int
    service_ids: List[int] = Field(min_length=1)
    appointment_date: date
    appointment_time: TimeString
    client_id: Optional[int] = None
    guest_name: Optional[str] = None


class RescheduleRequest(BaseModel):
    appointment_date: date
    appointment_time: TimeString
    barber_id: Optional[int] = None  # defaults to the current barber
    service_ids: Optional[List[int]] = None  # replaces the current services when given


class AppointmentServicePublic(BaseModel):
    service_id: int
    name: str
    duration: Optional[int] = None
    price: Decimal


class AppointmentPublic(BaseModel):
    id: int
    barber_id: int
    client_id: Optional[int] = None
    guest_name: Optional[str] = None
    appointment_date: date
    appointment_time: str
    duration: int
    value: Decimal
    status: AppointmentStatus
    services: List[AppointmentServicePublic]

    @classmethod
    def from_model(cls, appointment) -> "AppointmentPublic":
        return cls(
            id=appointment.id,
            barber_id=appointment.barber_id,
            client_id=appointment.client_id,
            guest_name=appointment.guest_name,
            appointment_date=appointment.appointment_date,
            appointment_time=appointment.appointment_time,
            duration=appointment.duration,
            value=appointment.value,
            status=appointment.status,
            services=[
                AppointmentServicePublic(
                    service_id=link.service_id, name=link.name, duration=link.duration, price=link.price
                )
                for link in appointment.services
            ],
        )


class AvailabilityResponse(BaseModel):
    barber_id: int
    date: date
    duration: int
    available_starts: List[str]


class EarningsPublic(BaseModel):
    today: Decimal
    week: Decimal
    month: Decimal
    scheduled_count: int


class NotificationPublic(BaseModel):
    id: int
    appointment_id: Optional[int] = None
    category: str
    title: str
    content: str
    read: bool
    created_at: datetime
