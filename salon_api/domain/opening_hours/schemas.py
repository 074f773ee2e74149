"""Opening hours schemas"""

from pydantic import BaseModel, field_validator, model_validator

from ...models import OpeningHours
from ...shared.validators import validate_time_of_day
from ..availability.time_utils import parse_time_of_day


class OpeningHoursUpdate(BaseModel):
    """Hours for one weekday, tenant-local HH:MM[:SS]"""

    opens_at: str
    closes_at: str

    @field_validator("opens_at", "closes_at")
    @classmethod
    def validate_time(cls, v):
        return validate_time_of_day(v)

    @model_validator(mode="after")
    def validate_order(self):
        if parse_time_of_day(self.opens_at) >= parse_time_of_day(self.closes_at):
            raise ValueError("opens_at must be before closes_at")
        return self


class OpeningHoursResponse(BaseModel):
    day: int
    opens_at: str
    closes_at: str

    class Config:
        from_attributes = True


def serialize_opening_hours(hours: OpeningHours) -> dict:
    return OpeningHoursResponse.model_validate(hours).model_dump()
