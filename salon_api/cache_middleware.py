"""
Response caching for route handlers.

``cache_response`` short-circuits on a hit and, on a miss, taps the
handler's JSON payload on its way out and stores it in the background.
``cache_ids_via_all`` stores only the matching IDs of a filtered listing and
resolves them against an already-cached "all items" payload.

Decorated endpoints must be ``async def`` and take a ``request: Request``
parameter; they should return plain JSON-able values (or a JSONResponse)
rather than relying on ``response_model`` filtering, since hits are served
verbatim.
"""

import json
import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Union
from urllib.parse import quote

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from .background import BackgroundDispatcher
from .cache import DEFAULT_TTL, URI_COMPONENT_SAFE, Cache

logger = logging.getLogger(__name__)

KeyBuilder = Union[str, Callable[[Request], str]]


def get_cache(request: Request) -> Cache:
    return request.app.state.cache


def get_dispatcher(request: Request) -> BackgroundDispatcher:
    return request.app.state.dispatcher


def skip_cache(request: Request, value: bool = True) -> None:
    """Opt the current request out of storing its response."""
    request.state.cache_skip = value


def default_cache_key(request: Request) -> str:
    """METHOD:path plus lexicographically sorted query parameters"""
    base = f"{request.method}:{request.url.path}"
    params = sorted(request.query_params.multi_items())
    if not params:
        return base
    query = "&".join(
        f"{k}={quote(v, safe=URI_COMPONENT_SAFE)}" for k, v in params if v not in (None, "")
    )
    return f"{base}?{query}" if query else base


def _resolve_key(key: Optional[KeyBuilder], request: Request) -> str:
    if callable(key):
        return key(request)
    return key or default_cache_key(request)


def _find_request(args: tuple, kwargs: dict) -> Request:
    for value in list(kwargs.values()) + list(args):
        if isinstance(value, Request):
            return value
    raise RuntimeError("Cached endpoints must declare a 'request: Request' parameter")


def _extract_payload(result: Any) -> tuple[Any, int]:
    """Return (json payload, status code) for whatever the handler produced."""
    if isinstance(result, Response):
        if not isinstance(result, JSONResponse):
            return None, result.status_code
        return json.loads(result.body), result.status_code
    return jsonable_encoder(result), 200


def is_error_payload(payload: Any, status_code: int) -> bool:
    if status_code >= 400:
        return True
    return isinstance(payload, dict) and "error" in payload


def _storable(request: Request, payload: Any, status_code: int, skip: bool) -> bool:
    if skip or getattr(request.state, "cache_skip", False):
        return False
    if payload is None:
        return False
    return not is_error_payload(payload, status_code)


def cache_response(
    key: Optional[KeyBuilder] = None,
    ttl_seconds: int = DEFAULT_TTL,
    methods: Iterable[str] = ("GET",),
    skip: bool = False,
):
    """
    Cache the JSON response of a route.

    Args:
        key: Fixed cache key or ``callable(request) -> str`` (defaults to METHOD:path?sorted-query)
        ttl_seconds: Time to live (default 300s)
        methods: HTTP methods eligible for caching
        skip: Disable caching entirely for this route

    Example:
        @router.get("")
        @cache_response(key=lambda r: build_cache_key("clients", {...}), ttl_seconds=300)
        async def list_clients(request: Request, ...):
            ...
    """
    allowed = {m.upper() for m in methods}

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            if request.method.upper() not in allowed:
                return await func(*args, **kwargs)

            cache = get_cache(request)
            cache_key = _resolve_key(key, request)

            if not skip:
                cached = await cache.get(cache_key)
                if cached is not None:
                    return JSONResponse(content=cached)

            result = await func(*args, **kwargs)

            payload, status_code = _extract_payload(result)
            if _storable(request, payload, status_code, skip):
                get_dispatcher(request).submit(
                    cache.set, cache_key, payload, ttl_seconds, description=f"cache set {cache_key}"
                )
            return result

        return wrapper

    return decorator


def _default_all_items(payload: Any) -> list:
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        return payload["items"]
    return []


def cache_ids_via_all(
    *,
    all_key: KeyBuilder,
    response_from_resolved: Callable[[Request, list, list], Any],
    ids_from_response: Callable[[Any], list],
    key: Optional[KeyBuilder] = None,
    all_items_selector: Optional[Callable[[Any], list]] = None,
    id_field: str = "id",
    ttl_seconds: int = DEFAULT_TTL,
    methods: Iterable[str] = ("GET",),
    skip: bool = False,
):
    """
    Cache only the IDs of a filtered listing.

    On hit the IDs are resolved against the payload cached under ``all_key``;
    if that payload is missing or empty the live handler runs instead, so an
    empty resolution never hides real data. On miss the handler's response is
    reduced to its IDs via ``ids_from_response`` and those are stored.
    """
    allowed = {m.upper() for m in methods}
    select_items = all_items_selector or _default_all_items

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            if request.method.upper() not in allowed:
                return await func(*args, **kwargs)

            cache = get_cache(request)
            cache_key = _resolve_key(key, request)

            if not skip:
                cached_ids = await cache.get(cache_key)
                if isinstance(cached_ids, list):
                    all_payload = await cache.get(_resolve_key(all_key, request))
                    try:
                        all_items = select_items(all_payload)
                    except Exception as e:
                        logger.error(f"❌ IDs cache resolve error for {cache_key}: {e}")
                        all_items = []
                    if isinstance(all_items, list) and all_items:
                        wanted = {str(v) for v in cached_ids}
                        resolved = [
                            item
                            for item in all_items
                            if isinstance(item, dict) and str(item.get(id_field)) in wanted
                        ]
                        return JSONResponse(
                            content=jsonable_encoder(
                                response_from_resolved(request, resolved, cached_ids)
                            )
                        )
                    logger.debug(f"IDs cache hit for {cache_key} but 'all' payload missing")

            result = await func(*args, **kwargs)

            payload, status_code = _extract_payload(result)
            if _storable(request, payload, status_code, skip):
                try:
                    ids = ids_from_response(payload)
                except Exception as e:
                    logger.error(f"❌ idsFromResponse error for {cache_key}: {e}")
                    ids = None
                if isinstance(ids, list):
                    get_dispatcher(request).submit(
                        cache.set, cache_key, ids, ttl_seconds, description=f"cache ids {cache_key}"
                    )
            return result

        return wrapper

    return decorator
