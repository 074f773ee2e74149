"""Treatment domain schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import Treatment, TreatmentCategory


class TreatmentCreate(BaseModel):
    """Schema for creating a treatment"""

    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    durationInMinutes: int
    treatmentCategoryId: Optional[int] = None
    showOnWeb: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("durationInMinutes")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be a positive number of minutes")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative")
        return v


class TreatmentCategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class TreatmentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    durationInMinutes: int
    showOnWeb: bool
    treatmentCategoryId: Optional[int] = None
    category: Optional[TreatmentCategoryResponse] = None

    @classmethod
    def from_model(cls, treatment: Treatment) -> "TreatmentResponse":
        return cls(
            id=treatment.id,
            name=treatment.name,
            description=treatment.description,
            price=treatment.price,
            durationInMinutes=treatment.duration_in_minutes,
            showOnWeb=treatment.show_on_web,
            treatmentCategoryId=treatment.category_id,
            category=(
                TreatmentCategoryResponse.model_validate(treatment.category)
                if treatment.category
                else None
            ),
        )


def serialize_treatment(treatment: Treatment) -> dict:
    return TreatmentResponse.from_model(treatment).model_dump(mode="json")


def serialize_category(category: TreatmentCategory) -> dict:
    return TreatmentCategoryResponse.model_validate(category).model_dump(mode="json")
