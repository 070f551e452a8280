# barberbook/models.py

from typing import Optional, List
from datetime import datetime, timezone, date as Date
from decimal import Decimal

from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column, Relationship

# Cancelled rows keep their slot in history but stop reserving it
ACTIVE_ROW_CLAUSE = text("status NOT LIKE 'cancelled%'")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str = ""
    password_hash: str
    role: str  # barber or client


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: int = Field(foreign_key="user.id", index=True)
    name: str
    duration: int  # minutes
    price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)


class WorkingHour(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="uq_barber_weekday"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: int = Field(foreign_key="user.id", index=True)
    day_of_week: int  # 0=Mon ... 6=Sun
    active: bool = True
    start_time: str  # HH:mm
    end_time: str
    intervals: List[dict] = Field(default_factory=list, sa_column=Column(JSON))  # [{"start": "08:00", "end": "12:00"}]


class BlockedDay(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("barber_id", "blocked_date", name="uq_barber_blocked_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    barber_id: int = Field(foreign_key="user.id", index=True)
    blocked_date: Date = Field(index=True)
    reason: Optional[str] = None


class Appointment(SQLModel, table=True):
    __table_args__ = (
        Index(
            "uq_active_barber_start",
            "barber_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=ACTIVE_ROW_CLAUSE,
            postgresql_where=ACTIVE_ROW_CLAUSE,
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: int = Field(foreign_key="user.id", index=True)
    client_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    guest_name: Optional[str] = None  # walk-in booked by the barber
    appointment_date: Date = Field(index=True)
    appointment_time: str  # HH:mm
    value: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    status: str = "confirmed"
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    services: List["AppointmentService"] = Relationship(
        back_populates="appointment",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "AppointmentService.id"},
    )

    @property
    def duration(self) -> int:
        return sum(link.duration or 0 for link in self.services)


class AppointmentService(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    appointment_id: Optional[int] = Field(default=None, foreign_key="appointment.id", index=True)
    service_id: int = Field(foreign_key="service.id")
    # Snapshot at booking time so later price/duration edits leave history alone
    name: str = ""
    duration: Optional[int] = None
    price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)

    appointment: Optional[Appointment] = Relationship(back_populates="services")


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    appointment_id: Optional[int] = Field(default=None, foreign_key="appointment.id")
    category: str  # booking, completion, cancellation or reschedule
    title: str
    content: str
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
