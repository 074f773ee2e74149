"""Treatment router - Catalogue endpoints"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_organisation_id
from ...cache import build_cache_key
from ...cache_middleware import cache_ids_via_all, cache_response, get_cache, get_dispatcher
from ...database import get_db
from ...invalidation import CacheEvent, emit
from .schemas import TreatmentCreate, serialize_treatment
from .service import TreatmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/treatments", tags=["Treatments"])


def get_treatment_service(db: Session = Depends(get_db)) -> TreatmentService:
    """Dependency injection for TreatmentService"""
    return TreatmentService(db)


def treatments_all_key(request: Request) -> str:
    """Stable key of the full catalogue, also read by the ID-indirection routes"""
    return f"treatments:all:{request.state.organisation_id}"


def _by_category_key(request: Request) -> str:
    return build_cache_key(
        "treatments",
        {
            "route": "byCategory",
            "org": request.state.organisation_id,
            "categoryId": request.path_params.get("category_id"),
        },
    )


def _by_category_from_resolved(request: Request, resolved: list, _ids: list) -> dict:
    return {
        "treatmentCategoryId": int(request.path_params["category_id"]),
        "treatments": resolved,
    }


def _treatment_ids(payload: dict) -> list:
    return [t["id"] for t in payload.get("treatments", [])]


# ============================================================================
# CATALOGUE
# ============================================================================


@router.get("")
@cache_response(key=treatments_all_key, ttl_seconds=300)
async def list_treatments(
    request: Request,
    organisation_id: int = Depends(get_organisation_id),
    service: TreatmentService = Depends(get_treatment_service),
):
    """All web-visible treatments for the tenant"""
    return service.list_treatments(organisation_id)


@router.get("/categories")
@cache_response(
    key=lambda r: build_cache_key("treatments", {"route": "categories", "org": r.state.organisation_id}),
    ttl_seconds=300,
)
async def list_categories(
    request: Request,
    organisation_id: int = Depends(get_organisation_id),
    service: TreatmentService = Depends(get_treatment_service),
):
    return service.list_categories(organisation_id)


@router.get("/byCategory/{category_id}")
@cache_ids_via_all(
    key=_by_category_key,
    all_key=treatments_all_key,
    all_items_selector=lambda payload: (payload or {}).get("treatments", []),
    response_from_resolved=_by_category_from_resolved,
    ids_from_response=_treatment_ids,
    ttl_seconds=120,
)
async def list_treatments_by_category(
    request: Request,
    category_id: int,
    organisation_id: int = Depends(get_organisation_id),
    service: TreatmentService = Depends(get_treatment_service),
):
    """Web-visible treatments in one category"""
    return service.list_by_category(organisation_id, category_id)


@router.get("/{treatment_id}")
@cache_response(
    key=lambda r: build_cache_key(
        "treatments", {"id": r.path_params.get("treatment_id"), "org": r.state.organisation_id}
    ),
    ttl_seconds=300,
)
async def get_treatment(
    request: Request,
    treatment_id: int,
    organisation_id: int = Depends(get_organisation_id),
    service: TreatmentService = Depends(get_treatment_service),
):
    return {"treatment": serialize_treatment(service.get_treatment(treatment_id, organisation_id))}


@router.post("", status_code=201)
async def create_treatment(
    request: Request,
    data: TreatmentCreate,
    organisation_id: int = Depends(get_organisation_id),
    service: TreatmentService = Depends(get_treatment_service),
):
    """Add a treatment to the catalogue"""
    treatment = service.create_treatment(data, organisation_id)
    emit(CacheEvent.TREATMENT_CHANGED, get_cache(request), get_dispatcher(request))
    return {"treatment": serialize_treatment(treatment)}
