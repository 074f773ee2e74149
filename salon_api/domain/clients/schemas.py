"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

from ...models import Client
from ...shared.validators import normalize_email, normalize_phone


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    email: Optional[EmailStr] = None
    phoneNumber: Optional[str] = None

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

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phoneNumber: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return normalize_email(v)

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)


class ClientResponse(BaseModel):
    """Schema for client response"""

    id: int
    name: str
    email: Optional[str] = None
    phoneNumber: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, client: Client) -> "ClientResponse":
        return cls(
            id=client.id,
            name=client.name,
            email=client.email,
            phoneNumber=client.phone_number,
            created_at=client.created_at,
        )


def serialize_client(client: Client) -> dict:
    return ClientResponse.from_model(client).model_dump(mode="json")
