"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_organisation_id
from ...cache import build_cache_key
from ...cache_middleware import cache_response, get_cache, get_dispatcher
from ...database import get_db
from ...invalidation import CacheEvent, emit
from ...shared.pagination import pagination_from_query, parse_pagination
from .schemas import ClientCreate, ClientUpdate, serialize_client
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


def _clients_list_key(request: Request) -> str:
    pagination = pagination_from_query(request.query_params)
    return build_cache_key(
        "clients",
        {
            "org": request.state.organisation_id,
            "page": pagination.page,
            "per": pagination.per_page,
        },
    )


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", status_code=201)
async def create_client(
    request: Request,
    data: ClientCreate,
    organisation_id: int = Depends(get_organisation_id),
    service: ClientService = Depends(get_client_service),
):
    """Create a new client"""
    client = service.create_client(data, organisation_id)
    emit(CacheEvent.CLIENT_CREATED, get_cache(request), get_dispatcher(request))
    return {"client": serialize_client(client)}


@router.get("")
@cache_response(key=_clients_list_key, ttl_seconds=300)
async def list_clients(
    request: Request,
    page: Optional[int] = Query(None),
    perPage: Optional[int] = Query(None),
    per: Optional[int] = Query(None),
    organisation_id: int = Depends(get_organisation_id),
    service: ClientService = Depends(get_client_service),
):
    """Paginated clients for the tenant"""
    return service.list_clients(organisation_id, parse_pagination(page, perPage, per))


@router.get("/{client_id}")
async def get_client(
    client_id: int,
    organisation_id: int = Depends(get_organisation_id),
    service: ClientService = Depends(get_client_service),
):
    """Get a specific client"""
    return {"client": serialize_client(service.get_client(client_id, organisation_id))}


@router.patch("/{client_id}")
async def update_client(
    request: Request,
    client_id: int,
    data: ClientUpdate,
    organisation_id: int = Depends(get_organisation_id),
    service: ClientService = Depends(get_client_service),
):
    """Update a client"""
    client = service.update_client(client_id, data, organisation_id)
    emit(CacheEvent.CLIENT_UPDATED, get_cache(request), get_dispatcher(request))
    return {"client": serialize_client(client)}
