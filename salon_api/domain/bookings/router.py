"""Booking router - FastAPI endpoints for bookings and availability"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_organisation_id
from ...cache import build_cache_key
from ...cache_middleware import cache_response, get_cache, get_dispatcher
from ...captcha import extract_captcha_token, verify_hcaptcha
from ...config import (
    BOOKING_RATE_LIMIT,
    BOOKING_RATE_WINDOW_SECONDS,
    DUPLICATE_SUBMISSION_TTL,
)
from ...database import get_db
from ...errors import RateLimitError
from ...rate_limiter import claim_submission, client_ip, create_rate_limiter
from ...shared.pagination import pagination_from_query, parse_pagination
from ..availability.schemas import AvailabilityResponse
from ..availability.service import AvailabilityService
from .schemas import BookingCreate, BookingStatusUpdate, serialize_booking
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

booking_rate_limit = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT,
    window_seconds=BOOKING_RATE_WINDOW_SECONDS,
    identifier=client_ip,
)


def get_booking_service(request: Request, db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, cache=get_cache(request), dispatcher=get_dispatcher(request))


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def _bookings_list_key(request: Request) -> str:
    pagination = pagination_from_query(request.query_params)
    return build_cache_key(
        "bookings",
        {
            "org": request.state.organisation_id,
            "page": pagination.page,
            "per": pagination.per_page,
        },
    )


def _availability_key(request: Request) -> str:
    return build_cache_key(
        "availability",
        {
            "org": request.state.organisation_id,
            "treatmentId": request.query_params.get("treatmentId"),
            "date": request.query_params.get("date"),
        },
    )


# ============================================================================
# PUBLIC BOOKING
# ============================================================================


@router.post("", status_code=201, dependencies=[Depends(booking_rate_limit)])
async def create_booking(
    request: Request,
    data: BookingCreate,
    organisation_id: int = Depends(get_organisation_id),
    service: BookingService = Depends(get_booking_service),
):
    """
    Create a booking request from the public website.

    Requires an hCaptcha token (body ``hcaptcha_token`` / ``h-captcha-response``
    or the matching headers). Identical submissions within the duplicate
    window are rejected with 429.
    """
    token = extract_captcha_token(data.model_dump(by_alias=True), request)
    await verify_hcaptcha(token, ip=client_ip(request))

    if not await claim_submission(
        request.app.state.redis, data.fingerprint_fields(), DUPLICATE_SUBMISSION_TTL
    ):
        logger.warning(f"🚫 Duplicate booking submission from {client_ip(request)}")
        raise RateLimitError("Duplicate submission detected")

    return await service.create_booking(organisation_id, data)


# ============================================================================
# READS
# ============================================================================


@router.get("")
@cache_response(key=_bookings_list_key, ttl_seconds=300)
async def list_bookings(
    request: Request,
    page: Optional[int] = Query(None),
    perPage: Optional[int] = Query(None),
    per: Optional[int] = Query(None),
    organisation_id: int = Depends(get_organisation_id),
    service: BookingService = Depends(get_booking_service),
):
    """Paginated bookings for the tenant"""
    return service.list_bookings(organisation_id, parse_pagination(page, perPage, per))


@router.get("/availability", response_model=AvailabilityResponse)
@cache_response(key=_availability_key, ttl_seconds=60)
async def get_availability(
    request: Request,
    treatmentId: int = Query(...),
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    organisation_id: int = Depends(get_organisation_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Bookable HH:MM start times for a treatment on a day"""
    return service.compute_slots(organisation_id, treatmentId, day)


@router.get("/byClientId/{client_id}")
@cache_response(
    key=lambda r: build_cache_key(
        "bookings",
        {"route": "byClientId", "clientId": r.path_params.get("client_id"), "org": r.state.organisation_id},
    ),
    ttl_seconds=300,
)
async def list_client_bookings(
    request: Request,
    client_id: int,
    organisation_id: int = Depends(get_organisation_id),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_client_bookings(client_id, organisation_id)


@router.get("/{booking_id}")
@cache_response(
    key=lambda r: build_cache_key(
        "bookings", {"id": r.path_params.get("booking_id"), "org": r.state.organisation_id}
    ),
    ttl_seconds=300,
)
async def get_booking(
    request: Request,
    booking_id: int,
    organisation_id: int = Depends(get_organisation_id),
    service: BookingService = Depends(get_booking_service),
):
    return {"booking": serialize_booking(service.get_booking(booking_id, organisation_id))}


# ============================================================================
# UPDATES
# ============================================================================


@router.patch("/{booking_id}/status")
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    organisation_id: int = Depends(get_organisation_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.update_status(booking_id, organisation_id, data.status)
    return {"booking": serialize_booking(booking)}
