"""Availability domain schemas"""

from datetime import date

from pydantic import BaseModel


class AvailabilityResponse(BaseModel):
    """Shape of ``GET /bookings/availability``"""

    date: date
    treatmentId: int
    durationInMinutes: int
    slots: list[str]
    open: bool
