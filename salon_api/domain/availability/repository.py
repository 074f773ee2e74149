"""Availability repository - Read-only queries behind slot computation"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, OpeningHours, Treatment


class AvailabilityRepository:
    """Repository for availability lookups"""

    @staticmethod
    def get_web_treatment(db: Session, organisation_id: int, treatment_id: int) -> Optional[Treatment]:
        """Treatment for the tenant, only if it is shown on the web"""
        return (
            db.query(Treatment)
            .filter(
                Treatment.id == treatment_id,
                Treatment.organisation_id == organisation_id,
                Treatment.show_on_web.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_opening_hours(db: Session, organisation_id: int, day: int) -> Optional[OpeningHours]:
        return (
            db.query(OpeningHours)
            .filter(OpeningHours.organisation_id == organisation_id, OpeningHours.day == day)
            .first()
        )

    @staticmethod
    def get_bookings_between(
        db: Session, organisation_id: int, window_start: datetime, window_end: datetime
    ) -> list[tuple[datetime, datetime]]:
        """(start, end) of every tenant booking intersecting the window"""
        rows = (
            db.query(Booking.appointment_start_time, Booking.appointment_end_time)
            .filter(
                Booking.organisation_id == organisation_id,
                Booking.appointment_start_time < window_end,
                Booking.appointment_end_time > window_start,
            )
            .all()
        )
        return [(row[0], row[1]) for row in rows]
