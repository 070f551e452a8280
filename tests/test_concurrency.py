"""
Double-booking protection: concurrent commits and randomized booking runs.
"""

import random
import threading
from contextlib import nullcontext
from datetime import date
from decimal import Decimal
from itertools import combinations

from sqlmodel import Session, SQLModel, select

from barberbook import store
from barberbook.booking import apply_event, create_booking
from barberbook.core import overlaps
from barberbook.db import make_engine
from barberbook.errors import SlotUnavailableError
from barberbook.models import Appointment, Service, User, WorkingHour
from barberbook.schemas import BookingDraft

from conftest import BEFORE_MONDAY, MONDAY, as_actor


def assert_no_overlaps(session, barber_id, day):
    windows = store.get_occupied_windows(session, barber_id, day)
    for a, b in combinations(windows, 2):
        assert not overlaps(a.start, a.end, b.start, b.end), (a, b)


def seed_file_database(tmp_path):
    """A file-backed shop: one barber working Monday 08-12, a 30 and a 60 minute service, two clients."""
    engine = make_engine(f"sqlite:///{tmp_path / 'race.db'}")
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        barber = User(email="b@example.com", name="B", password_hash="x", role="barber")
        clients = [User(email=f"c{i}@example.com", name=f"C{i}", password_hash="x", role="client") for i in range(2)]
        session.add_all([barber, *clients])
        session.commit()
        cut = Service(barber_id=barber.id, name="Cut", duration=30, price=Decimal("50"))
        combo = Service(barber_id=barber.id, name="Combo", duration=60, price=Decimal("75"))
        session.add_all([cut, combo])
        session.add(
            WorkingHour(
                barber_id=barber.id, day_of_week=0, start_time="08:00", end_time="12:00",
                intervals=[{"start": "08:00", "end": "12:00"}],
            )
        )
        session.commit()
        shop = {
            "barber_id": barber.id,
            "cut": cut.id,
            "combo": combo.id,
            "actors": [as_actor(c) for c in clients],
        }
    return engine, shop


def race(engine, drafts, actors):
    """Run one create_booking per thread, released together; return the outcomes."""
    barrier = threading.Barrier(len(drafts))
    outcomes = []

    def attempt(draft, actor):
        with Session(engine) as session:
            barrier.wait()
            try:
                result = create_booking(session, draft, actor, now=BEFORE_MONDAY)
                outcomes.append(("booked", result.appointment.status))
            except SlotUnavailableError:
                outcomes.append(("rejected", None))

    threads = [threading.Thread(target=attempt, args=pair) for pair in zip(drafts, actors)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


def test_concurrent_commits_for_the_same_slot(tmp_path):
    """Two clients racing for 10:00: exactly one wins, the other is told the slot is gone."""
    engine, shop = seed_file_database(tmp_path)
    draft = BookingDraft(
        barber_id=shop["barber_id"], service_ids=[shop["cut"]], appointment_date=MONDAY, appointment_time="10:00"
    )

    outcomes = race(engine, [draft, draft], shop["actors"])

    assert sorted(kind for kind, _ in outcomes) == ["booked", "rejected"]
    with Session(engine) as session:
        rows = session.exec(select(Appointment)).all()
        assert len(rows) == 1
        assert rows[0].status in ("confirmed", "pending")
    engine.dispose()


def test_overlapping_starts_across_workers(tmp_path, monkeypatch):
    """
    10:00 for an hour against 10:30 for half an hour, as if from two worker
    processes: no shared in-process lock, and each side pauses after reading
    the day's windows so the reads would interleave if the database allowed it.
    """
    engine, shop = seed_file_database(tmp_path)
    monkeypatch.setattr(store, "day_lock", lambda barber_id, day: nullcontext())

    read_windows = store.get_occupied_windows
    both_read = threading.Barrier(2, timeout=1)

    def windows_then_pause(*args, **kwargs):
        windows = read_windows(*args, **kwargs)
        try:
            both_read.wait()
        except threading.BrokenBarrierError:
            pass
        return windows

    monkeypatch.setattr(store, "get_occupied_windows", windows_then_pause)

    drafts = [
        BookingDraft(barber_id=shop["barber_id"], service_ids=[shop["combo"]], appointment_date=MONDAY, appointment_time="10:00"),
        BookingDraft(barber_id=shop["barber_id"], service_ids=[shop["cut"]], appointment_date=MONDAY, appointment_time="10:30"),
    ]
    outcomes = race(engine, drafts, shop["actors"])

    assert sorted(kind for kind, _ in outcomes) == ["booked", "rejected"]
    monkeypatch.undo()
    with Session(engine) as session:
        assert len(session.exec(select(Appointment)).all()) == 1
        assert_no_overlaps(session, shop["barber_id"], MONDAY)
    engine.dispose()


def test_randomized_bookings_never_overlap(session, barber, services, monday_hours):
    rng = random.Random(20300107)
    grid = [f"{h:02d}:{m:02d}" for h in range(8, 18) for m in (0, 30)]
    actor = as_actor(barber)
    booked = []
    committed = 0

    for i in range(120):
        chosen = rng.sample(list(services.values()), rng.randint(1, 2))
        day = MONDAY if rng.random() < 0.8 else date(2030, 1, 14)
        draft = BookingDraft(
            barber_id=barber.id,
            service_ids=[s.id for s in chosen],
            appointment_date=day,
            appointment_time=rng.choice(grid),
            guest_name=f"Guest {i}",
        )
        try:
            booked.append(create_booking(session, draft, actor, now=BEFORE_MONDAY).appointment.id)
            committed += 1
        except SlotUnavailableError:
            pass

        if booked and rng.random() < 0.1:
            apply_event(session, booked.pop(rng.randrange(len(booked))), "cancel_by_provider", actor)

        assert_no_overlaps(session, barber.id, day)

    assert committed > 0
