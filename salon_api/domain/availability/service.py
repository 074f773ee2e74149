"""Availability service - Slot computation"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import SLOT_STEP_MINUTES
from ...errors import TreatmentNotFound
from .repository import AvailabilityRepository
from .time_utils import (
    combine_date_and_time,
    format_hhmm,
    iter_slot_starts,
    overlaps,
    weekday_sunday_first,
)

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service layer for slot computation.

    ``clock`` returns the current tenant-local wall-clock time and is only
    consulted to drop past slots when the requested date is today.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Callable[[], datetime]] = None,
        step_minutes: int = SLOT_STEP_MINUTES,
    ):
        self.db = db
        self.repo = AvailabilityRepository()
        self.clock = clock or datetime.now
        self.step = timedelta(minutes=max(1, step_minutes))

    def compute_slots(self, organisation_id: int, treatment_id: int, day: date) -> dict:
        """
        Bookable start times for ``treatment_id`` on ``day``.

        Returns the availability payload; ``slots`` is empty both when the
        salon is closed and when it is fully booked, ``open`` tells them apart.

        Raises:
            TreatmentNotFound: treatment missing, hidden from the web, or another tenant's
        """
        treatment = self.repo.get_web_treatment(self.db, organisation_id, treatment_id)
        if not treatment:
            raise TreatmentNotFound()

        duration_minutes = treatment.duration_in_minutes
        response = {
            "date": day.isoformat(),
            "treatmentId": treatment_id,
            "durationInMinutes": duration_minutes,
            "slots": [],
            "open": False,
        }

        hours = self.repo.get_opening_hours(self.db, organisation_id, weekday_sunday_first(day))
        if not hours:
            logger.debug(f"📅 Organisation {organisation_id} closed on {day.isoformat()}")
            return response

        day_start = combine_date_and_time(day, hours.opens_at)
        day_end = combine_date_and_time(day, hours.closes_at)
        response["open"] = True

        booked = self.repo.get_bookings_between(self.db, organisation_id, day_start, day_end)

        now = self.clock()
        is_today = now.date() == day
        duration = timedelta(minutes=duration_minutes)

        slots = []
        for slot_start in iter_slot_starts(day_start, day_end, duration, self.step):
            if is_today and slot_start <= now:
                continue
            slot_end = slot_start + duration
            if any(overlaps(slot_start, slot_end, b_start, b_end) for b_start, b_end in booked):
                continue
            slots.append(format_hhmm(slot_start))

        response["slots"] = slots
        return response
