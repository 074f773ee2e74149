# tests/test_captcha.py
"""Tests for hCaptcha token extraction and verification"""

import httpx
import pytest
from starlette.requests import Request

from salon_api.captcha import extract_captcha_token, verify_hcaptcha
from salon_api.errors import UpstreamError, ValidationFailed


def _request(headers: dict | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": "/bookings", "headers": raw})


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestExtractToken:

    def test_body_field_wins(self):
        body = {"hcaptcha_token": "from-body"}
        assert extract_captcha_token(body, _request({"h-captcha-response": "from-header"})) == "from-body"

    def test_widget_field_name(self):
        assert extract_captcha_token({"h-captcha-response": "widget"}, _request()) == "widget"

    @pytest.mark.parametrize("header", ["h-captcha-response", "x-hcaptcha-token"])
    def test_header_fallback(self, header):
        assert extract_captcha_token({}, _request({header: "from-header"})) == "from-header"

    def test_missing(self):
        assert extract_captcha_token(None, _request()) is None


class TestVerifyHcaptcha:

    @pytest.mark.asyncio
    async def test_skipped_without_secret(self):
        await verify_hcaptcha(None, secret=None)

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self):
        with pytest.raises(ValidationFailed) as exc_info:
            await verify_hcaptcha(None, secret="s3cret")
        assert exc_info.value.error == "Captcha required"

    @pytest.mark.asyncio
    async def test_success_posts_form(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content.decode()
            return httpx.Response(200, json={"success": True})

        async with _client(handler) as http_client:
            await verify_hcaptcha("tok", ip="203.0.113.9", secret="s3cret", http_client=http_client)

        assert "secret=s3cret" in seen["body"]
        assert "response=tok" in seen["body"]
        assert "remoteip=203.0.113.9" in seen["body"]

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error-codes": ["invalid-input-response"]})

        async with _client(handler) as http_client:
            with pytest.raises(ValidationFailed) as exc_info:
                await verify_hcaptcha("tok", secret="s3cret", http_client=http_client)

        assert exc_info.value.error == "Captcha failed"
        assert exc_info.value.details == "invalid-input-response"

    @pytest.mark.asyncio
    async def test_network_failure_is_upstream_error(self):
        def handler(request):
            raise httpx.ConnectError("no route to host")

        async with _client(handler) as http_client:
            with pytest.raises(UpstreamError):
                await verify_hcaptcha("tok", secret="s3cret", http_client=http_client)

    @pytest.mark.asyncio
    async def test_non_json_response_is_upstream_error(self):
        def handler(request):
            return httpx.Response(502, text="<html>bad gateway</html>")

        async with _client(handler) as http_client:
            with pytest.raises(UpstreamError):
                await verify_hcaptcha("tok", secret="s3cret", http_client=http_client)
