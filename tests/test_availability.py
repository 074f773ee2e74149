# tests/test_availability.py
"""Tests for slot computation"""

from datetime import date, datetime, time, timedelta

import pytest

from salon_api.domain.availability.service import AvailabilityService
from salon_api.domain.availability.time_utils import (
    combine_date_and_time,
    overlaps,
    parse_time_of_day,
    weekday_sunday_first,
)
from salon_api.errors import TreatmentNotFound
from salon_api.models import Booking, Client, OpeningHours, Organisation, Treatment

DAY = date(2026, 10, 20)


def _all_slots(start: str, end: str, duration: int = 30, step: int = 10) -> list[str]:
    cursor = datetime.combine(DAY, parse_time_of_day(start))
    day_end = datetime.combine(DAY, parse_time_of_day(end))
    slots = []
    while cursor + timedelta(minutes=duration) <= day_end:
        slots.append(cursor.strftime("%H:%M"))
        cursor += timedelta(minutes=step)
    return slots


def _fixed_clock(value: datetime):
    return lambda: value


def _book(db, organisation_id, treatment_id, start: datetime, minutes: int = 30):
    client = Client(organisation_id=organisation_id, name="Booked Client", email=f"{start:%H%M}@example.com")
    db.add(client)
    db.commit()
    db.add(
        Booking(
            organisation_id=organisation_id,
            client_id=client.id,
            treatment_id=treatment_id,
            appointment_start_time=start,
            appointment_end_time=start + timedelta(minutes=minutes),
        )
    )
    db.commit()


class TestTimeUtils:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("09:00", time(9, 0)),
            ("09:00:30", time(9, 0, 30)),
            ("17:30:00+00", time(17, 30)),
            ("08:15+01:00", time(8, 15)),
            ("10:45Z", time(10, 45)),
        ],
    )
    def test_parse_strips_timezone_suffix(self, value, expected):
        assert parse_time_of_day(value) == expected

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_time_of_day("nine o'clock")

    def test_weekday_is_sunday_first(self):
        assert weekday_sunday_first(date(2026, 10, 18)) == 0  # Sunday
        assert weekday_sunday_first(date(2026, 10, 19)) == 1  # Monday
        assert weekday_sunday_first(date(2026, 10, 24)) == 6  # Saturday

    def test_overlap_is_half_open(self):
        nine = datetime(2026, 10, 20, 9, 0)
        half_nine = datetime(2026, 10, 20, 9, 30)
        ten = datetime(2026, 10, 20, 10, 0)
        assert not overlaps(nine, half_nine, half_nine, ten)
        assert overlaps(nine, ten, half_nine, ten)

    def test_combine_is_wall_clock(self):
        assert combine_date_and_time(DAY, "09:00+05") == datetime(2026, 10, 20, 9, 0)


class TestComputeSlots:

    def test_today_before_opening_lists_whole_day(self, db_session, seeded):
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime.combine(DAY, time(8, 0))))

        result = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)

        assert result["slots"][0] == "09:00"
        assert result["slots"][-1] == "16:30"
        assert result["slots"] == _all_slots("09:00", "17:00")
        assert len(result["slots"]) == 46
        assert result["durationInMinutes"] == 30
        assert result["date"] == "2026-10-20"
        assert result["treatmentId"] == seeded["treatment"].id
        assert result["open"] is True

    def test_every_slot_fits_in_opening_hours(self, db_session, seeded):
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        result = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)

        opens = datetime.combine(DAY, time(9, 0))
        closes = datetime.combine(DAY, time(17, 0))
        for slot in result["slots"]:
            start = datetime.combine(DAY, parse_time_of_day(slot))
            assert start >= opens
            assert start + timedelta(minutes=30) <= closes

    def test_existing_booking_excluded_with_touching_boundaries_allowed(self, db_session, seeded):
        org_id = seeded["organisation"].id
        _book(db_session, org_id, seeded["treatment"].id, datetime.combine(DAY, time(10, 0)))
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        slots = service.compute_slots(org_id, seeded["treatment"].id, DAY)["slots"]

        for blocked in ("09:40", "09:50", "10:00", "10:10", "10:20"):
            assert blocked not in slots
        assert "09:30" in slots
        assert "10:30" in slots
        assert len(slots) == 46 - 5

    def test_no_slot_overlaps_any_booking(self, db_session, seeded):
        org_id = seeded["organisation"].id
        bookings = [(time(9, 5), 45), (time(13, 0), 60), (time(16, 20), 30)]
        for start, minutes in bookings:
            _book(db_session, org_id, seeded["treatment"].id, datetime.combine(DAY, start), minutes)
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        slots = service.compute_slots(org_id, seeded["treatment"].id, DAY)["slots"]

        for slot in slots:
            s_start = datetime.combine(DAY, parse_time_of_day(slot))
            s_end = s_start + timedelta(minutes=30)
            for start, minutes in bookings:
                b_start = datetime.combine(DAY, start)
                b_end = b_start + timedelta(minutes=minutes)
                assert s_start >= b_end or s_end <= b_start

    def test_past_slots_skipped_today(self, db_session, seeded):
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime.combine(DAY, time(12, 5))))

        slots = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)["slots"]

        assert slots[0] == "12:10"

    def test_slot_at_exactly_now_is_skipped(self, db_session, seeded):
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime.combine(DAY, time(12, 0))))

        slots = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)["slots"]

        assert "12:00" not in slots
        assert slots[0] == "12:10"

    def test_past_time_ignored_for_future_dates(self, db_session, seeded):
        service = AvailabilityService(
            db_session, clock=_fixed_clock(datetime.combine(DAY - timedelta(days=1), time(23, 0)))
        )

        slots = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)["slots"]

        assert slots[0] == "09:00"

    def test_closed_day_returns_empty_list(self, db_session, seeded):
        org_id = seeded["organisation"].id
        db_session.query(OpeningHours).filter(
            OpeningHours.organisation_id == org_id, OpeningHours.day == weekday_sunday_first(DAY)
        ).delete()
        db_session.commit()
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        result = service.compute_slots(org_id, seeded["treatment"].id, DAY)

        assert result["slots"] == []
        assert result["open"] is False

    def test_fully_booked_is_open_with_no_slots(self, db_session, seeded):
        org_id = seeded["organisation"].id
        _book(db_session, org_id, seeded["treatment"].id, datetime.combine(DAY, time(9, 0)), 8 * 60)
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        result = service.compute_slots(org_id, seeded["treatment"].id, DAY)

        assert result["slots"] == []
        assert result["open"] is True

    def test_opening_hours_with_timezone_suffix(self, db_session, seeded):
        org_id = seeded["organisation"].id
        hours = (
            db_session.query(OpeningHours)
            .filter(OpeningHours.organisation_id == org_id, OpeningHours.day == weekday_sunday_first(DAY))
            .first()
        )
        hours.opens_at = "10:00:00+00"
        hours.closes_at = "11:00:00+00"
        db_session.commit()
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        slots = service.compute_slots(org_id, seeded["treatment"].id, DAY)["slots"]

        assert slots == ["10:00", "10:10", "10:20", "10:30"]

    def test_other_tenants_bookings_do_not_block(self, db_session, seeded):
        other = Organisation(name="Other Salon")
        db_session.add(other)
        db_session.commit()
        other_treatment = Treatment(organisation_id=other.id, name="Cut", duration_in_minutes=30)
        db_session.add(other_treatment)
        db_session.commit()
        _book(db_session, other.id, other_treatment.id, datetime.combine(DAY, time(10, 0)))
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        slots = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)["slots"]

        assert "10:00" in slots

    def test_idempotent(self, db_session, seeded):
        org_id = seeded["organisation"].id
        _book(db_session, org_id, seeded["treatment"].id, datetime.combine(DAY, time(14, 0)))
        service = AvailabilityService(db_session, clock=_fixed_clock(datetime(2026, 1, 1)))

        first = service.compute_slots(org_id, seeded["treatment"].id, DAY)
        second = service.compute_slots(org_id, seeded["treatment"].id, DAY)

        assert first == second

    def test_hidden_treatment_not_found(self, db_session, seeded):
        treatment = seeded["treatment"]
        treatment.show_on_web = False
        db_session.commit()
        service = AvailabilityService(db_session)

        with pytest.raises(TreatmentNotFound):
            service.compute_slots(seeded["organisation"].id, treatment.id, DAY)

    def test_unknown_treatment_not_found(self, db_session, seeded):
        with pytest.raises(TreatmentNotFound):
            AvailabilityService(db_session).compute_slots(seeded["organisation"].id, 9999, DAY)

    def test_custom_step(self, db_session, seeded):
        service = AvailabilityService(
            db_session, clock=_fixed_clock(datetime(2026, 1, 1)), step_minutes=30
        )

        slots = service.compute_slots(seeded["organisation"].id, seeded["treatment"].id, DAY)["slots"]

        assert slots == _all_slots("09:00", "17:00", step=30)


class TestAvailabilityRoute:

    def test_availability_endpoint(self, client, seeded, auth_headers):
        response = client.get(
            "/bookings/availability",
            params={"treatmentId": seeded["treatment"].id, "date": "2030-01-08"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "2030-01-08"
        assert body["slots"][0] == "09:00"
        assert body["slots"][-1] == "16:30"

    def test_missing_parameters_is_validation_error(self, client, seeded, auth_headers):
        response = client.get("/bookings/availability", params={"date": "2030-01-08"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"
        assert response.json()["issues"][0]["path"] == ["treatmentId"]

    def test_unknown_treatment_is_404(self, client, seeded, auth_headers):
        response = client.get(
            "/bookings/availability",
            params={"treatmentId": 9999, "date": "2030-01-08"},
            headers=auth_headers,
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Treatment not found"}
