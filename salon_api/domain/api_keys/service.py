"""API key service"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import ApiKeyVerification, api_key_cache_key, create_hashed_api_key, verify_api_key
from ...cache import Cache
from ...config import API_KEY_CACHE_TTL
from ...errors import NotFoundError, ValidationFailed
from ...models import Organisation
from .repository import ApiKeyRepository
from .schemas import ApiKeyResponse

logger = logging.getLogger(__name__)


class ApiKeyService:

    def __init__(self, db: Session, cache: Optional[Cache] = None):
        self.db = db
        self.cache = cache
        self.repo = ApiKeyRepository()

    def create_organisation(self, name: str, contact_email: Optional[str]) -> Organisation:
        organisation = self.repo.create_organisation(self.db, name, contact_email)
        logger.info(f"🏢 Organisation {organisation.id} created: {name}")
        return organisation

    async def issue_key(self, organisation_id: Optional[int]) -> str:
        """Create a key for an organisation and return its plaintext (shown once)"""
        if not organisation_id:
            raise ValidationFailed("organisation_id is required")
        if not self.repo.get_organisation(self.db, organisation_id):
            raise NotFoundError("Organisation not found")

        created = await asyncio.to_thread(create_hashed_api_key)
        self.repo.create_api_key(self.db, created.key_id, created.hashed_key, organisation_id)
        logger.info(f"🔑 API key {created.key_id} issued for organisation {organisation_id}")
        return created.full_key

    def list_keys(self, organisation_id: int) -> dict:
        keys = self.repo.get_api_keys(self.db, organisation_id)
        return {"apiKeys": [ApiKeyResponse.from_model(k).model_dump(mode="json") for k in keys]}

    async def verify(self, api_key: Optional[str]) -> ApiKeyVerification:
        if not api_key:
            raise ValidationFailed("API key is required")
        return await verify_api_key(api_key, self.db, self.cache)

    async def revoke(self, key_id: str, organisation_id: int) -> None:
        api_key = self.repo.get_api_key(self.db, key_id, organisation_id)
        if not api_key:
            raise NotFoundError("API key not found")
        self.repo.delete_api_key(self.db, api_key)
        if self.cache is not None and not await self.cache.delete(api_key_cache_key(key_id)):
            # Verification reads the cache first, so a stale entry keeps the key valid until it expires
            logger.error(
                f"❌ Revoked API key {key_id} could not be evicted from the cache; "
                f"it stays verifiable for up to {API_KEY_CACHE_TTL}s"
            )
        logger.info(f"🗑️ API key {key_id} revoked for organisation {organisation_id}")
