# tests/test_auth.py
"""Tests for API key issuance, verification and the request guard"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from salon_api.auth import (
    HASH_VERIFY_ERROR,
    INVALID_FORMAT,
    INVALID_KEY,
    KEY_NOT_FOUND,
    InvalidApiKeyFormat,
    api_key_cache_key,
    create_hashed_api_key,
    is_path_excluded,
    parse_full_key,
    verify_api_key,
)
from salon_api.models import ApiKey


def _db_returning(row):
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = row
    return db


class TestKeyFormat:
    """Credential parsing"""

    def test_parse_valid_key(self):
        key_id = str(uuid.uuid4())
        assert parse_full_key(f"ak_{key_id}_abc-DEF_123") == (key_id, "abc-DEF_123")

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "ak_not-a-uuid_token",
            "ak_123e4567-e89b-12d3-a456-426614174000_",
            "ak_123e4567-e89b-12d3-a456-426614174000_tok=en",
            "key_123e4567-e89b-12d3-a456-426614174000_token",
            "ak_123e4567e89b12d3a456426614174000_token",
            " ak_123e4567-e89b-12d3-a456-426614174000_token",
        ],
    )
    def test_parse_rejects_malformed_keys(self, value):
        with pytest.raises(InvalidApiKeyFormat):
            parse_full_key(value)

    def test_created_key_shape(self):
        created = create_hashed_api_key()
        assert created.full_key == f"ak_{created.key_id}_{created.token}"
        assert parse_full_key(created.full_key) == (created.key_id, created.token)
        # 32 random bytes, unpadded url-safe base64
        assert len(created.token) == 43
        assert created.hashed_key.startswith("$argon2id$")
        assert "m=65536,t=3,p=1" in created.hashed_key
        assert created.full_key not in created.hashed_key


class TestVerifyApiKey:
    """verify_api_key against database and cache"""

    @pytest.mark.asyncio
    async def test_invalid_format_never_touches_database(self):
        db = MagicMock()
        cache = AsyncMock()

        result = await verify_api_key("not-a-key", db, cache)

        assert result.valid is False
        assert result.error == INVALID_FORMAT
        db.query.assert_not_called()
        cache.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_round_trip_created_key_verifies(self):
        created = create_hashed_api_key()
        row = ApiKey(key_id=created.key_id, hashed_key=created.hashed_key, organisation_id=7)

        result = await verify_api_key(created.full_key, _db_returning(row))

        assert result.valid is True
        assert result.key_id == created.key_id
        assert result.organisation_id == 7

    @pytest.mark.asyncio
    async def test_unknown_key_id(self):
        created = create_hashed_api_key()

        result = await verify_api_key(created.full_key, _db_returning(None))

        assert result.valid is False
        assert result.error == KEY_NOT_FOUND

    @pytest.mark.asyncio
    async def test_wrong_token_is_invalid(self):
        created = create_hashed_api_key()
        row = ApiKey(key_id=created.key_id, hashed_key=created.hashed_key, organisation_id=7)
        tampered = f"ak_{created.key_id}_{'x' * 43}"

        result = await verify_api_key(tampered, _db_returning(row))

        assert result.valid is False
        assert result.error == INVALID_KEY

    def test_token_alone_was_not_what_was_hashed(self):
        """The stored hash covers the whole credential, not just the token"""
        from salon_api.auth import api_key_context

        created = create_hashed_api_key()
        assert api_key_context.verify(created.full_key, created.hashed_key)
        assert not api_key_context.verify(created.token, created.hashed_key)

    @pytest.mark.asyncio
    async def test_corrupt_hash_is_a_verification_failure(self):
        created = create_hashed_api_key()
        row = ApiKey(key_id=created.key_id, hashed_key="not-a-hash", organisation_id=7)

        result = await verify_api_key(created.full_key, _db_returning(row))

        assert result.valid is False
        assert result.error == HASH_VERIFY_ERROR

    @pytest.mark.asyncio
    async def test_cache_hit_skips_database(self):
        created = create_hashed_api_key()
        cache = AsyncMock()
        cache.get.return_value = {"hashedKey": created.hashed_key, "organisation_id": 3}
        db = MagicMock()

        result = await verify_api_key(created.full_key, db, cache)

        assert result.valid is True
        assert result.organisation_id == 3
        cache.get.assert_awaited_once_with(api_key_cache_key(created.key_id))
        db.query.assert_not_called()
        cache.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_successful_database_read_populates_cache(self):
        created = create_hashed_api_key()
        row = ApiKey(key_id=created.key_id, hashed_key=created.hashed_key, organisation_id=3)
        cache = AsyncMock()
        cache.get.return_value = None

        result = await verify_api_key(created.full_key, _db_returning(row), cache)

        assert result.valid is True
        cache.set.assert_awaited_once()
        key, value, _ttl = cache.set.await_args.args
        assert key == f"apiKeys:id:{created.key_id}"
        assert value == {"hashedKey": created.hashed_key, "organisation_id": 3}

    @pytest.mark.asyncio
    async def test_failed_verification_does_not_populate_cache(self):
        created = create_hashed_api_key()
        row = ApiKey(key_id=created.key_id, hashed_key=created.hashed_key, organisation_id=3)
        cache = AsyncMock()
        cache.get.return_value = None

        await verify_api_key(f"ak_{created.key_id}_wrong", _db_returning(row), cache)

        cache.set.assert_not_called()


class TestExcludedPaths:

    @pytest.mark.parametrize("path", ["/", "/health", "/health/redis", "/docs", "/openapi.json", "/admin/apiKeys"])
    def test_excluded(self, path):
        assert is_path_excluded(path)

    @pytest.mark.parametrize("path", ["/bookings", "/apiKeys", "/clients/1", "/treatments"])
    def test_protected(self, path):
        assert not is_path_excluded(path)


class TestRequestGuard:
    """App-wide API key dependency"""

    def test_missing_key_gets_challenge(self, client, seeded):
        response = client.get("/treatments")

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        assert response.headers["WWW-Authenticate"] == 'Bearer realm="api"'

    def test_invalid_key_gets_invalid_token_challenge(self, client, seeded):
        response = client.get("/treatments", headers={"x-api-key": "ak_nope"})

        assert response.status_code == 401
        assert response.json()["details"] == INVALID_FORMAT
        assert response.headers["WWW-Authenticate"] == 'Bearer realm="api", error="invalid_token"'

    def test_header_key_accepted(self, client, auth_headers):
        assert client.get("/treatments", headers=auth_headers).status_code == 200

    @pytest.mark.parametrize("scheme", ["Bearer", "ApiKey", "bearer"])
    def test_authorization_header_accepted(self, client, seeded, scheme):
        response = client.get("/treatments", headers={"Authorization": f"{scheme} {seeded['api_key']}"})
        assert response.status_code == 200

    def test_query_param_accepted(self, client, seeded):
        response = client.get("/treatments", params={"api_key": seeded["api_key"]})
        assert response.status_code == 200

    def test_excluded_path_needs_no_key(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_key_without_organisation_is_forbidden(self, client, db_session):
        created = create_hashed_api_key()
        db_session.add(ApiKey(key_id=created.key_id, hashed_key=created.hashed_key, organisation_id=None))
        db_session.commit()

        response = client.get("/treatments", headers={"x-api-key": created.full_key})

        assert response.status_code == 403
        assert response.json()["error"] == "Organization not found for this API key"

    def test_verification_result_is_cached(self, client, seeded, auth_headers, fake_redis):
        client.get("/treatments", headers=auth_headers)

        assert f"apiKeys:id:{seeded['key_id']}" in fake_redis.store
