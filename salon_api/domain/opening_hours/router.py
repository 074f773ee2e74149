"""Opening hours router"""

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.orm import Session

from ...auth import get_organisation_id
from ...cache import build_cache_key
from ...cache_middleware import cache_response, get_cache, get_dispatcher
from ...database import get_db
from ...invalidation import CacheEvent, emit
from .schemas import OpeningHoursUpdate, serialize_opening_hours
from .service import OpeningHoursService

router = APIRouter(prefix="/openingHours", tags=["Opening Hours"])


def get_opening_hours_service(db: Session = Depends(get_db)) -> OpeningHoursService:
    """Dependency injection for OpeningHoursService"""
    return OpeningHoursService(db)


@router.get("")
@cache_response(
    key=lambda r: build_cache_key("openingHours", {"org": r.state.organisation_id}),
    ttl_seconds=300,
)
async def get_opening_hours(
    request: Request,
    organisation_id: int = Depends(get_organisation_id),
    service: OpeningHoursService = Depends(get_opening_hours_service),
):
    """Weekly opening hours; a missing day means closed"""
    return service.get_week(organisation_id)


@router.put("/{day}")
async def set_opening_hours(
    request: Request,
    data: OpeningHoursUpdate,
    day: int = Path(..., ge=0, le=6, description="0=Sunday .. 6=Saturday"),
    organisation_id: int = Depends(get_organisation_id),
    service: OpeningHoursService = Depends(get_opening_hours_service),
):
    hours = service.set_day(organisation_id, day, data)
    emit(CacheEvent.OPENING_HOURS_CHANGED, get_cache(request), get_dispatcher(request))
    return {"openingHours": serialize_opening_hours(hours)}


@router.delete("/{day}")
async def close_day(
    request: Request,
    day: int = Path(..., ge=0, le=6, description="0=Sunday .. 6=Saturday"),
    organisation_id: int = Depends(get_organisation_id),
    service: OpeningHoursService = Depends(get_opening_hours_service),
):
    service.close_day(organisation_id, day)
    emit(CacheEvent.OPENING_HOURS_CHANGED, get_cache(request), get_dispatcher(request))
    return {"message": "Opening hours removed", "day": day}
