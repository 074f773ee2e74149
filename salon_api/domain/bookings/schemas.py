"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...models import Booking
from ...shared.validators import normalize_email, normalize_phone
from ..clients.schemas import ClientResponse

BookingStatus = Literal["requested", "confirmed", "partial"]


class BookingCreate(BaseModel):
    """Public booking request"""

    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = Field(None, min_length=6, max_length=30)
    treatmentId: int
    appointmentStartTime: datetime
    staffId: Optional[int] = None
    message: Optional[str] = Field(None, max_length=2000)
    hcaptcha_token: Optional[str] = None
    h_captcha_response: Optional[str] = Field(None, alias="h-captcha-response")

    class Config:
        extra = "forbid"
        populate_by_name = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator("appointmentStartTime")
    @classmethod
    def to_wall_clock(cls, v: datetime):
        # Stored as salon-local wall-clock; an offset on the input is ignored
        return v.replace(tzinfo=None, microsecond=0)

    def fingerprint_fields(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "treatmentId": self.treatmentId,
            "message": self.message,
        }


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    message: Optional[str] = None
    status: str
    treatmentId: int
    treatmentName: Optional[str] = None
    staffId: Optional[int] = None
    appointmentStartTime: datetime
    appointmentEndTime: datetime
    client: Optional[ClientResponse] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            message=booking.message,
            status=booking.status,
            treatmentId=booking.treatment_id,
            treatmentName=booking.treatment.name if booking.treatment else None,
            staffId=booking.staff_id,
            appointmentStartTime=booking.appointment_start_time,
            appointmentEndTime=booking.appointment_end_time,
            client=ClientResponse.from_model(booking.client) if booking.client else None,
            created_at=booking.created_at,
        )


def serialize_booking(booking: Booking) -> dict:
    return BookingResponse.from_model(booking).model_dump(mode="json")
