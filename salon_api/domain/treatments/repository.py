"""Treatment repository - Database operations for treatments and categories"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Treatment, TreatmentCategory


class TreatmentRepository:
    """Repository for treatment database operations"""

    @staticmethod
    def get_web_treatments(db: Session, organisation_id: int, category_id: Optional[int] = None) -> list[Treatment]:
        query = (
            db.query(Treatment)
            .options(joinedload(Treatment.category))
            .filter(Treatment.organisation_id == organisation_id, Treatment.show_on_web.is_(True))
        )
        if category_id is not None:
            query = query.filter(Treatment.category_id == category_id)
        return query.order_by(Treatment.id.asc()).all()

    @staticmethod
    def get_treatment_by_id(db: Session, treatment_id: int, organisation_id: int) -> Optional[Treatment]:
        return (
            db.query(Treatment)
            .options(joinedload(Treatment.category))
            .filter(Treatment.id == treatment_id, Treatment.organisation_id == organisation_id)
            .first()
        )

    @staticmethod
    def get_categories(db: Session, organisation_id: int) -> list[TreatmentCategory]:
        return (
            db.query(TreatmentCategory)
            .filter(TreatmentCategory.organisation_id == organisation_id)
            .order_by(TreatmentCategory.name.asc())
            .all()
        )

    @staticmethod
    def get_category_by_id(db: Session, category_id: int, organisation_id: int) -> Optional[TreatmentCategory]:
        return (
            db.query(TreatmentCategory)
            .filter(TreatmentCategory.id == category_id, TreatmentCategory.organisation_id == organisation_id)
            .first()
        )

    @staticmethod
    def create_treatment(db: Session, organisation_id: int, **treatment_data) -> Treatment:
        treatment = Treatment(organisation_id=organisation_id, **treatment_data)
        db.add(treatment)
        db.commit()
        db.refresh(treatment)
        return treatment
