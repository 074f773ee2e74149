"""API key routers - admin issuance and tenant self-service"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import INVALID_FORMAT, KEY_NOT_FOUND, get_organisation_id
from ...cache import build_cache_key
from ...cache_middleware import cache_response, get_cache, get_dispatcher
from ...config import ADMIN_API_SECRET
from ...database import get_db
from ...errors import ForbiddenError, ServiceUnavailable
from ...invalidation import CacheEvent, emit
from .schemas import ApiKeyCreate, ApiKeyVerifyRequest, OrganisationCreate
from .service import ApiKeyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/apiKeys", tags=["API Keys"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])

VERIFY_ERROR_STATUS = {INVALID_FORMAT: 400, KEY_NOT_FOUND: 404}


def get_api_key_service(request: Request, db: Session = Depends(get_db)) -> ApiKeyService:
    """Dependency injection for ApiKeyService"""
    return ApiKeyService(db, cache=get_cache(request))


def require_admin_secret(x_admin_secret: Optional[str] = Header(None)) -> None:
    """Admin routes skip API-key auth and are gated by the shared admin secret instead"""
    if not ADMIN_API_SECRET:
        raise ServiceUnavailable("Admin API not configured")
    if not x_admin_secret or not hmac.compare_digest(x_admin_secret, ADMIN_API_SECRET):
        logger.warning("🚫 Admin request with missing or wrong x-admin-secret")
        raise ForbiddenError("Invalid admin secret")


# ============================================================================
# ADMIN
# ============================================================================


@admin_router.post("/organisations", status_code=201, dependencies=[Depends(require_admin_secret)])
async def create_organisation(
    data: OrganisationCreate,
    service: ApiKeyService = Depends(get_api_key_service),
):
    organisation = service.create_organisation(data.name, data.contact_email)
    return {"organisation": {"id": organisation.id, "name": organisation.name}}


@admin_router.post("/apiKeys", status_code=201, dependencies=[Depends(require_admin_secret)])
async def create_api_key(
    request: Request,
    data: ApiKeyCreate,
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Issue a key; the plaintext is returned only in this response"""
    full_key = await service.issue_key(data.organisation_id)
    emit(CacheEvent.API_KEY_CREATED, get_cache(request), get_dispatcher(request))
    return {"message": "API key created successfully", "apiKey": full_key}


# ============================================================================
# TENANT
# ============================================================================


@router.get("")
@cache_response(
    key=lambda r: build_cache_key("apiKeys", {"org": r.state.organisation_id}),
    ttl_seconds=300,
)
async def list_api_keys(
    request: Request,
    organisation_id: int = Depends(get_organisation_id),
    service: ApiKeyService = Depends(get_api_key_service),
):
    return service.list_keys(organisation_id)


@router.post("/verifyKey")
async def verify_key(
    data: ApiKeyVerifyRequest,
    service: ApiKeyService = Depends(get_api_key_service),
):
    """Check a credential without using it: 400 bad format, 404 unknown key, 401 wrong secret"""
    result = await service.verify(data.apiKey)
    if result.valid:
        return {"valid": True}
    status_code = VERIFY_ERROR_STATUS.get(result.error, 401)
    return JSONResponse(status_code=status_code, content={"valid": False, "error": result.error})


@router.delete("/{key_id}")
async def revoke_api_key(
    request: Request,
    key_id: str,
    organisation_id: int = Depends(get_organisation_id),
    service: ApiKeyService = Depends(get_api_key_service),
):
    await service.revoke(key_id, organisation_id)
    emit(CacheEvent.API_KEY_REVOKED, get_cache(request), get_dispatcher(request))
    return {"message": "API key revoked", "keyId": key_id}
