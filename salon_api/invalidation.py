"""
Mapping from entity mutations to the cache-key patterns they make stale.

Routes never call ``invalidate_pattern`` with ad-hoc strings; they emit a
``CacheEvent`` and the patterns registered here are invalidated in the
background. Adding a new cached prefix means adding it to every event that
can change the data behind it.
"""

import enum
import logging

from .background import BackgroundDispatcher
from .cache import Cache

logger = logging.getLogger(__name__)


class CachePrefix(str, enum.Enum):
    BOOKINGS = "bookings"
    AVAILABILITY = "availability"
    CLIENTS = "clients"
    TREATMENTS = "treatments"
    OPENING_HOURS = "openingHours"
    API_KEYS = "apiKeys"

    @property
    def pattern(self) -> str:
        return f"{self.value}:*"


class CacheEvent(str, enum.Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_UPDATED = "booking_updated"
    CLIENT_CREATED = "client_created"
    CLIENT_UPDATED = "client_updated"
    TREATMENT_CHANGED = "treatment_changed"
    OPENING_HOURS_CHANGED = "opening_hours_changed"
    API_KEY_CREATED = "api_key_created"
    API_KEY_REVOKED = "api_key_revoked"


INVALIDATION_REGISTRY: dict[CacheEvent, tuple[CachePrefix, ...]] = {
    CacheEvent.BOOKING_CREATED: (CachePrefix.BOOKINGS, CachePrefix.AVAILABILITY),
    CacheEvent.BOOKING_UPDATED: (CachePrefix.BOOKINGS, CachePrefix.AVAILABILITY),
    # A new client may appear in client listings only
    CacheEvent.CLIENT_CREATED: (CachePrefix.CLIENTS,),
    # Booking payloads embed the client row
    CacheEvent.CLIENT_UPDATED: (CachePrefix.CLIENTS, CachePrefix.BOOKINGS),
    CacheEvent.TREATMENT_CHANGED: (CachePrefix.TREATMENTS, CachePrefix.AVAILABILITY),
    CacheEvent.OPENING_HOURS_CHANGED: (CachePrefix.OPENING_HOURS, CachePrefix.AVAILABILITY),
    CacheEvent.API_KEY_CREATED: (CachePrefix.API_KEYS,),
    CacheEvent.API_KEY_REVOKED: (CachePrefix.API_KEYS,),
}

_unregistered = set(CacheEvent) - set(INVALIDATION_REGISTRY)
if _unregistered:
    raise RuntimeError(
        f"Cache events without invalidation patterns: {sorted(e.value for e in _unregistered)}"
    )


def patterns_for(event: CacheEvent) -> list[str]:
    return [prefix.pattern for prefix in INVALIDATION_REGISTRY[event]]


def emit(event: CacheEvent, cache: Cache, dispatcher: BackgroundDispatcher) -> list[str]:
    """Schedule invalidation of every pattern affected by ``event`` (fire-and-forget)."""
    patterns = patterns_for(event)
    for pattern in patterns:
        dispatcher.submit(cache.invalidate_pattern, pattern, description=f"invalidate {pattern}")
    logger.debug(f"🧹 {event.value}: invalidation queued for {patterns}")
    return patterns
