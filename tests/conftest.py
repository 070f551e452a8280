"""
Shared fixtures: an in-memory database seeded with one barber, one client,
a few services and Monday working hours.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from barberbook.models import Service, User, WorkingHour

MONDAY = date(2030, 1, 7)
BEFORE_MONDAY = datetime(2030, 1, 1, 9, 0)


def as_actor(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def _add(session: Session, row):
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


@pytest.fixture
def barber(session):
    return _add(session, User(email="mateus@example.com", name="Mateus", password_hash="x", role="barber"))


@pytest.fixture
def other_barber(session):
    return _add(session, User(email="joao@example.com", name="Joao", password_hash="x", role="barber"))


@pytest.fixture
def client_user(session):
    return _add(session, User(email="ana@example.com", name="Ana", password_hash="x", role="client"))


@pytest.fixture
def services(session, barber):
    """Services keyed by name: cut 30min, beard 30min, combo 60min."""
    rows = {
        "cut": Service(barber_id=barber.id, name="Cut", duration=30, price=Decimal("50.00")),
        "beard": Service(barber_id=barber.id, name="Beard", duration=30, price=Decimal("35.00")),
        "combo": Service(barber_id=barber.id, name="Combo", duration=60, price=Decimal("75.00")),
    }
    for row in rows.values():
        session.add(row)
    session.commit()
    for row in rows.values():
        session.refresh(row)
    return rows


@pytest.fixture
def monday_hours(session, barber):
    """Mondays 08:00-18:00 with a lunch gap between 12:00 and 13:00."""
    return _add(
        session,
        WorkingHour(
            barber_id=barber.id,
            day_of_week=0,
            active=True,
            start_time="08:00",
            end_time="18:00",
            intervals=[{"start": "08:00", "end": "12:00"}, {"start": "13:00", "end": "18:00"}],
        ),
    )
