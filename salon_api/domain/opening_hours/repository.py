"""Opening hours repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import OpeningHours


class OpeningHoursRepository:

    @staticmethod
    def get_week(db: Session, organisation_id: int) -> list[OpeningHours]:
        return (
            db.query(OpeningHours)
            .filter(OpeningHours.organisation_id == organisation_id)
            .order_by(OpeningHours.day.asc())
            .all()
        )

    @staticmethod
    def get_day(db: Session, organisation_id: int, day: int) -> Optional[OpeningHours]:
        return (
            db.query(OpeningHours)
            .filter(OpeningHours.organisation_id == organisation_id, OpeningHours.day == day)
            .first()
        )

    @staticmethod
    def upsert_day(db: Session, organisation_id: int, day: int, opens_at: str, closes_at: str) -> OpeningHours:
        hours = OpeningHoursRepository.get_day(db, organisation_id, day)
        if hours is None:
            hours = OpeningHours(organisation_id=organisation_id, day=day)
            db.add(hours)
        hours.opens_at = opens_at
        hours.closes_at = closes_at
        db.commit()
        db.refresh(hours)
        return hours

    @staticmethod
    def delete_day(db: Session, hours: OpeningHours) -> None:
        db.delete(hours)
        db.commit()
