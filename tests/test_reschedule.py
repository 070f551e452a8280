"""
Tests for moving appointments to a new date/time.
"""

from datetime import date
from decimal import Decimal

import pytest

from barberbook import config
from barberbook.booking import apply_event, create_booking
from barberbook.errors import InvalidTimeError, InvalidTransitionError, PermissionDeniedError, SlotUnavailableError
from barberbook.models import WorkingHour
from barberbook.notifications import NotificationCategory
from barberbook.reschedule import reschedule_appointment
from barberbook.schemas import BookingDraft

from conftest import BEFORE_MONDAY, MONDAY, as_actor


def book(session, barber, actor, services, time, **kwargs):
    draft = BookingDraft(
        barber_id=barber.id,
        service_ids=[s.id for s in services],
        appointment_date=MONDAY,
        appointment_time=time,
        **kwargs,
    )
    return create_booking(session, draft, actor, now=BEFORE_MONDAY).appointment


class TestReschedule:

    def test_move_overlapping_its_own_window(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["combo"]], "10:00")

        result = reschedule_appointment(
            session, appointment.id, as_actor(client_user), MONDAY, "10:30", now=BEFORE_MONDAY
        )

        assert result.appointment.appointment_time == "10:30"
        assert result.appointment.duration == 60

    def test_barber_may_move_off_grid(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "10:00")
        result = reschedule_appointment(session, appointment.id, as_actor(barber), MONDAY, "12:15", now=BEFORE_MONDAY)
        assert result.appointment.appointment_time == "12:15"

    def test_client_must_pick_an_offered_slot(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "10:00")
        with pytest.raises(SlotUnavailableError):
            reschedule_appointment(session, appointment.id, as_actor(client_user), MONDAY, "12:15", now=BEFORE_MONDAY)

    def test_conflict_leaves_original_untouched(self, session, barber, client_user, services, monday_hours, monkeypatch):
        monkeypatch.setattr(config, "CLIENT_BOOKING_STATUS", "pending")
        moving = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        book(session, barber, as_actor(barber), [services["combo"]], "14:00", guest_name="Carlos")

        with pytest.raises(SlotUnavailableError):
            reschedule_appointment(
                session, moving.id, as_actor(barber), MONDAY, "14:30",
                service_ids=[services["combo"].id], now=BEFORE_MONDAY,
            )

        session.refresh(moving)
        assert moving.appointment_time == "09:00"
        assert moving.status == "pending"
        assert [link.name for link in moving.services] == ["Cut"]
        assert moving.value == Decimal("50.00")

    def test_status_resets_to_confirmed(self, session, barber, client_user, services, monday_hours, monkeypatch):
        monkeypatch.setattr(config, "CLIENT_BOOKING_STATUS", "pending")
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        result = reschedule_appointment(session, appointment.id, as_actor(barber), MONDAY, "15:00", now=BEFORE_MONDAY)
        assert result.appointment.status == "confirmed"

    def test_services_are_replaced_not_merged(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"], services["beard"]], "09:00")

        result = reschedule_appointment(
            session, appointment.id, as_actor(client_user), MONDAY, "15:00",
            service_ids=[services["combo"].id], now=BEFORE_MONDAY,
        )

        assert [link.name for link in result.appointment.services] == ["Combo"]
        assert result.appointment.value == Decimal("75.00")
        assert result.appointment.duration == 60

    def test_barber_reschedule_notifies_client(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        result = reschedule_appointment(session, appointment.id, as_actor(barber), MONDAY, "15:00", now=BEFORE_MONDAY)
        assert [(n.user_id, n.category) for n in result.notifications] == [
            (client_user.id, NotificationCategory.reschedule)
        ]

    def test_client_reschedule_notifies_both(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        result = reschedule_appointment(session, appointment.id, as_actor(client_user), MONDAY, "15:00", now=BEFORE_MONDAY)
        assert [n.user_id for n in result.notifications] == [barber.id, client_user.id]

    def test_guest_reschedule_notifies_nobody(self, session, barber, services, monday_hours):
        appointment = book(session, barber, as_actor(barber), [services["cut"]], "09:00", guest_name="Carlos")
        result = reschedule_appointment(session, appointment.id, as_actor(barber), MONDAY, "15:00", now=BEFORE_MONDAY)
        assert result.notifications == []

    def test_move_to_another_day(self, session, barber, client_user, services, monday_hours):
        next_monday = date(2030, 1, 14)
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        result = reschedule_appointment(session, appointment.id, as_actor(client_user), next_monday, "09:00", now=BEFORE_MONDAY)
        assert result.appointment.appointment_date == next_monday

        # The old slot is free again
        book(session, barber, as_actor(client_user), [services["cut"]], "09:00")

    def test_move_to_another_barber(self, session, barber, other_barber, client_user, services, monday_hours):
        session.add(
            WorkingHour(
                barber_id=other_barber.id, day_of_week=0, start_time="08:00", end_time="12:00",
                intervals=[{"start": "08:00", "end": "12:00"}],
            )
        )
        session.commit()
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")

        result = reschedule_appointment(
            session, appointment.id, as_actor(client_user), MONDAY, "09:00",
            barber_id=other_barber.id, now=BEFORE_MONDAY,
        )
        assert result.appointment.barber_id == other_barber.id

    def test_terminal_appointment_cannot_move(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        apply_event(session, appointment.id, "cancel_by_client", as_actor(client_user))
        with pytest.raises(InvalidTransitionError):
            reschedule_appointment(session, appointment.id, as_actor(client_user), MONDAY, "15:00", now=BEFORE_MONDAY)

    def test_strangers_cannot_move_it(self, session, barber, other_barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        with pytest.raises(PermissionDeniedError):
            reschedule_appointment(session, appointment.id, as_actor(other_barber), MONDAY, "15:00", now=BEFORE_MONDAY)

    def test_barber_cannot_move_into_another_calendar(self, session, barber, other_barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        with pytest.raises(PermissionDeniedError):
            reschedule_appointment(
                session, appointment.id, as_actor(barber), MONDAY, "09:00",
                barber_id=other_barber.id, now=BEFORE_MONDAY,
            )
        session.refresh(appointment)
        assert appointment.barber_id == barber.id

    def test_barber_reschedule_rejects_malformed_time(self, session, barber, client_user, services, monday_hours):
        appointment = book(session, barber, as_actor(client_user), [services["cut"]], "09:00")
        with pytest.raises(InvalidTimeError):
            reschedule_appointment(session, appointment.id, as_actor(barber), MONDAY, "10:00\n", now=BEFORE_MONDAY)
        session.refresh(appointment)
        assert appointment.appointment_time == "09:00"
