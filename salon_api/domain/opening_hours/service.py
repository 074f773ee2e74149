"""Opening hours service"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFoundError
from ...models import OpeningHours
from .repository import OpeningHoursRepository
from .schemas import OpeningHoursUpdate, serialize_opening_hours

logger = logging.getLogger(__name__)


class OpeningHoursService:

    def __init__(self, db: Session):
        self.db = db
        self.repo = OpeningHoursRepository()

    def get_week(self, organisation_id: int) -> dict:
        return {"openingHours": [serialize_opening_hours(h) for h in self.repo.get_week(self.db, organisation_id)]}

    def set_day(self, organisation_id: int, day: int, data: OpeningHoursUpdate) -> OpeningHours:
        hours = self.repo.upsert_day(self.db, organisation_id, day, data.opens_at, data.closes_at)
        logger.info(f"🕘 Opening hours for organisation {organisation_id} day {day}: {data.opens_at}-{data.closes_at}")
        return hours

    def close_day(self, organisation_id: int, day: int) -> None:
        hours = self.repo.get_day(self.db, organisation_id, day)
        if not hours:
            raise NotFoundError("Opening hours not found")
        self.repo.delete_day(self.db, hours)
        logger.info(f"🕘 Organisation {organisation_id} now closed on day {day}")
