"""
Tests for time arithmetic and the conflict predicate.
"""

import pytest

from barberbook.core import Window, has_conflict, overlaps, to_minutes, to_time_string
from barberbook.errors import InvalidDurationError, InvalidTimeError


class TestTimeArithmetic:

    def test_to_minutes(self):
        assert to_minutes("00:00") == 0
        assert to_minutes("08:30") == 510
        assert to_minutes("23:59") == 1439

    def test_to_time_string(self):
        assert to_time_string(0) == "00:00"
        assert to_time_string(510) == "08:30"
        assert to_time_string(1439) == "23:59"

    def test_round_trip_every_minute_of_the_day(self):
        for minutes in range(24 * 60):
            text = to_time_string(minutes)
            assert to_minutes(text) == minutes
            assert to_time_string(to_minutes(text)) == text

    @pytest.mark.parametrize(
        "value",
        ["24:00", "12:60", "9:00", "ab:cd", "", "12:00:00", " 12:00", "-1:00", "08:00\n", "\uff10\uff18:\uff10\uff10", None, 720],
    )
    def test_malformed_times_are_rejected(self, value):
        with pytest.raises(InvalidTimeError):
            to_minutes(value)

    @pytest.mark.parametrize("value", [-1, 1440, 10_000, 1.5, "10", True])
    def test_out_of_range_minutes_are_rejected(self, value):
        with pytest.raises(InvalidTimeError):
            to_time_string(value)

    def test_invalid_time_is_a_value_error(self):
        with pytest.raises(ValueError):
            to_minutes("25:00")


class TestConflict:

    def test_overlaps_is_half_open(self):
        assert overlaps(540, 600, 570, 630)
        assert overlaps(540, 600, 540, 600)
        assert not overlaps(540, 600, 600, 660)  # touching ends do not collide
        assert not overlaps(600, 660, 540, 600)

    def test_has_conflict(self):
        windows = [Window(appointment_id=1, start=540, duration=60)]
        assert has_conflict(570, 30, windows)
        assert has_conflict(510, 60, windows)
        assert not has_conflict(600, 30, windows)
        assert not has_conflict(480, 60, windows)

    def test_excluded_appointment_is_ignored(self):
        windows = [
            Window(appointment_id=1, start=540, duration=60),
            Window(appointment_id=2, start=660, duration=30),
        ]
        assert not has_conflict(570, 60, windows, exclude_id=1)
        assert has_conflict(630, 60, windows, exclude_id=1)

    def test_no_windows_means_no_conflict(self):
        assert not has_conflict(600, 90, [])

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_is_rejected(self, duration):
        with pytest.raises(InvalidDurationError):
            has_conflict(600, duration, [])

    def test_window_requires_positive_duration(self):
        with pytest.raises(InvalidDurationError):
            Window(appointment_id=1, start=600, duration=0)
        assert Window(appointment_id=1, start=600, duration=45).end == 645
