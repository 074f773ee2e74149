"""Treatment service - Business logic for the treatment catalogue"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFoundError, TreatmentNotFound
from ...models import Treatment
from .repository import TreatmentRepository
from .schemas import TreatmentCreate, serialize_category, serialize_treatment

logger = logging.getLogger(__name__)


class TreatmentService:
    """Service layer for treatment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TreatmentRepository()

    def list_treatments(self, organisation_id: int) -> dict:
        treatments = self.repo.get_web_treatments(self.db, organisation_id)
        return {"treatments": [serialize_treatment(t) for t in treatments]}

    def list_by_category(self, organisation_id: int, category_id: int) -> dict:
        treatments = self.repo.get_web_treatments(self.db, organisation_id, category_id)
        return {
            "treatmentCategoryId": category_id,
            "treatments": [serialize_treatment(t) for t in treatments],
        }

    def list_categories(self, organisation_id: int) -> dict:
        categories = self.repo.get_categories(self.db, organisation_id)
        return {"categories": [serialize_category(c) for c in categories]}

    def get_treatment(self, treatment_id: int, organisation_id: int) -> Treatment:
        treatment = self.repo.get_treatment_by_id(self.db, treatment_id, organisation_id)
        if not treatment or not treatment.show_on_web:
            raise TreatmentNotFound()
        return treatment

    def create_treatment(self, data: TreatmentCreate, organisation_id: int) -> Treatment:
        if data.treatmentCategoryId is not None and not self.repo.get_category_by_id(
            self.db, data.treatmentCategoryId, organisation_id
        ):
            raise NotFoundError("Treatment category not found")

        treatment = self.repo.create_treatment(
            self.db,
            organisation_id,
            name=data.name,
            description=data.description,
            price=data.price,
            duration_in_minutes=data.durationInMinutes,
            category_id=data.treatmentCategoryId,
            show_on_web=data.showOnWeb,
        )
        logger.info(f"✅ Treatment {treatment.id} created for organisation {organisation_id}")
        return treatment
