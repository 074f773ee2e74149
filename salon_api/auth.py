"""
API key authentication.

Credentials have the form ``ak_<keyId>_<token>`` where keyId is a UUID and
token is 32 random bytes in unpadded URL-safe base64. Only an Argon2id hash
of the *full* credential is stored, looked up by keyId.
"""

import asyncio
import logging
import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .cache import Cache
from .config import API_KEY_CACHE_TTL, API_KEY_HEADER, API_KEY_QUERY_PARAM
from .database import get_db
from .errors import AuthError, ForbiddenError
from .models import ApiKey

logger = logging.getLogger(__name__)

# Argon2id: 64 MiB memory, 3 iterations, single lane
api_key_context = CryptContext(
    schemes=["argon2"],
    argon2__type="id",
    argon2__memory_cost=2**16,
    argon2__rounds=3,
    argon2__parallelism=1,
)

FULL_KEY_RE = re.compile(
    r"^ak_([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})_([A-Za-z0-9\-_]+)$"
)
AUTHORIZATION_RE = re.compile(r"^(Bearer|ApiKey)\s+(.+)$", re.IGNORECASE)

# Paths served without an API key (prefix strings or compiled regexes)
EXCLUDED_PATHS: list[Union[str, re.Pattern]] = [
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/admin/",
    re.compile(r"^/$"),
]

# Verification outcomes
INVALID_FORMAT = "invalid_format"
KEY_NOT_FOUND = "key_not_found"
INVALID_KEY = "invalid_key"
HASH_VERIFY_ERROR = "hash_verify_error"


class InvalidApiKeyFormat(ValueError):
    pass


@dataclass
class CreatedApiKey:
    key_id: str
    token: str
    full_key: str
    hashed_key: str


@dataclass
class ApiKeyVerification:
    valid: bool
    error: Optional[str] = None
    key_id: Optional[str] = None
    organisation_id: Optional[int] = None


def build_full_key(key_id: str, token: str) -> str:
    return f"ak_{key_id}_{token}"


def parse_full_key(full_key: str) -> tuple[str, str]:
    """Split a credential into (keyId, token); raises InvalidApiKeyFormat."""
    if not isinstance(full_key, str) or not full_key:
        raise InvalidApiKeyFormat("Invalid API key format")
    match = FULL_KEY_RE.match(full_key)
    if not match:
        raise InvalidApiKeyFormat("Invalid API key format")
    return match.group(1), match.group(2)


def hash_api_key(full_key: str) -> str:
    return api_key_context.hash(full_key)


def create_hashed_api_key(token_bytes: int = 32) -> CreatedApiKey:
    """
    Generate a new credential and its Argon2id hash.
    Show ``full_key`` to the caller exactly once and persist only ``hashed_key``.
    """
    key_id = str(uuid.uuid4())
    token = secrets.token_urlsafe(token_bytes)
    full_key = build_full_key(key_id, token)
    return CreatedApiKey(
        key_id=key_id, token=token, full_key=full_key, hashed_key=hash_api_key(full_key)
    )


def api_key_cache_key(key_id: str) -> str:
    return f"apiKeys:id:{key_id}"


def _verify_hash(full_key: str, hashed_key: str) -> bool:
    return api_key_context.verify(full_key, hashed_key)


async def verify_api_key(full_key: str, db: Session, cache: Optional[Cache] = None) -> ApiKeyVerification:
    """
    Verify a credential against its stored hash.

    The format is checked before any lookup. The stored record is read from the
    cache first and the database second; a successful verification repopulates
    the cache (best-effort).
    """
    try:
        key_id, _token = parse_full_key(full_key)
    except InvalidApiKeyFormat:
        return ApiKeyVerification(valid=False, error=INVALID_FORMAT)

    record = None
    from_cache = False
    if cache is not None:
        cached = await cache.get(api_key_cache_key(key_id))
        if isinstance(cached, dict) and cached.get("hashedKey"):
            record = cached
            from_cache = True

    if record is None:
        row = db.query(ApiKey).filter(ApiKey.key_id == key_id).first()
        if not row:
            logger.warning(f"🚫 API key not found: {key_id}")
            return ApiKeyVerification(valid=False, error=KEY_NOT_FOUND, key_id=key_id)
        record = {"hashedKey": row.hashed_key, "organisation_id": row.organisation_id}

    try:
        # Argon2 is deliberately slow; keep it off the event loop
        ok = await asyncio.to_thread(_verify_hash, full_key, record["hashedKey"])
    except Exception as e:
        logger.error(f"❌ API key hash verification error for {key_id}: {e}")
        return ApiKeyVerification(valid=False, error=HASH_VERIFY_ERROR, key_id=key_id)

    if not ok:
        logger.warning(f"🚫 Invalid API key presented for {key_id}")
        return ApiKeyVerification(valid=False, error=INVALID_KEY, key_id=key_id)

    if cache is not None and not from_cache:
        await cache.set(api_key_cache_key(key_id), record, API_KEY_CACHE_TTL)

    return ApiKeyVerification(
        valid=True, key_id=key_id, organisation_id=record.get("organisation_id")
    )


def is_path_excluded(path: str) -> bool:
    for excluded in EXCLUDED_PATHS:
        if isinstance(excluded, str) and path.startswith(excluded):
            return True
        if isinstance(excluded, re.Pattern) and excluded.search(path):
            return True
    return False


def extract_credential(request: Request) -> Optional[str]:
    """Read the credential from x-api-key, then Authorization, then ?api_key="""
    header_value = request.headers.get(API_KEY_HEADER)
    if header_value and header_value.strip():
        return header_value.strip()

    authorization = request.headers.get("authorization")
    if authorization:
        match = AUTHORIZATION_RE.match(authorization.strip())
        if match:
            return match.group(2).strip()

    query_value = request.query_params.get(API_KEY_QUERY_PARAM)
    if query_value and query_value.strip():
        return query_value.strip()

    return None


async def require_api_key(request: Request, db: Session = Depends(get_db)) -> None:
    """
    App-wide dependency: authenticate the caller and attach its organisation
    to ``request.state.organisation_id`` for tenant-scoped handlers.
    """
    if is_path_excluded(request.url.path):
        return

    provided = extract_credential(request)
    if not provided:
        raise AuthError("missing_key", headers={"WWW-Authenticate": 'Bearer realm="api"'})

    result = await verify_api_key(provided, db, getattr(request.app.state, "cache", None))
    if not result.valid:
        raise AuthError(
            result.error,
            headers={"WWW-Authenticate": 'Bearer realm="api", error="invalid_token"'},
        )

    if not result.organisation_id:
        raise ForbiddenError("Organization not found for this API key")

    request.state.api_key_id = result.key_id
    request.state.organisation_id = result.organisation_id
    logger.debug(f"✅ API key {result.key_id} authenticated for organisation {result.organisation_id}")


def get_organisation_id(request: Request) -> int:
    """Tenant of the authenticated API key."""
    organisation_id = getattr(request.state, "organisation_id", None)
    if organisation_id is None:
        raise AuthError("missing_key", headers={"WWW-Authenticate": 'Bearer realm="api"'})
    return organisation_id
