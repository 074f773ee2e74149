"""API key schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from ...models import ApiKey


class OrganisationCreate(BaseModel):
    name: str
    contact_email: Optional[EmailStr] = None


class ApiKeyCreate(BaseModel):
    organisation_id: Optional[int] = None


class ApiKeyVerifyRequest(BaseModel):
    apiKey: Optional[str] = None


class ApiKeyResponse(BaseModel):
    keyId: str
    organisation_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, api_key: ApiKey) -> "ApiKeyResponse":
        return cls(
            keyId=api_key.key_id,
            organisation_id=api_key.organisation_id,
            created_at=api_key.created_at,
        )
