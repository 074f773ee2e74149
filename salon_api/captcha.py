"""
hCaptcha verification for public form submissions
"""

import logging
from typing import Optional

import httpx
from fastapi import Request

from .config import HCAPTCHA_SECRET_KEY, HCAPTCHA_VERIFY_URL
from .errors import UpstreamError, ValidationFailed

logger = logging.getLogger(__name__)

TOKEN_BODY_FIELDS = ("hcaptcha_token", "h-captcha-response")
TOKEN_HEADERS = ("h-captcha-response", "x-hcaptcha-token")


def extract_captcha_token(body: Optional[dict], request: Request) -> Optional[str]:
    for field in TOKEN_BODY_FIELDS:
        if body and body.get(field):
            return body[field]
    for header in TOKEN_HEADERS:
        if request.headers.get(header):
            return request.headers[header]
    return None


async def verify_hcaptcha(
    token: Optional[str],
    ip: Optional[str] = None,
    secret: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> None:
    """
    Verify an hCaptcha token, raising on failure.

    Raises:
        ValidationFailed: token missing or rejected by hCaptcha
        UpstreamError: hCaptcha could not be reached
    """
    secret = secret or HCAPTCHA_SECRET_KEY
    if not secret:
        logger.warning("⚠️ HCAPTCHA_SECRET_KEY not configured - skipping CAPTCHA verification")
        return

    if not token:
        raise ValidationFailed("Captcha required")

    form = {"secret": secret, "response": token}
    if ip:
        form["remoteip"] = ip

    try:
        if http_client is not None:
            response = await http_client.post(HCAPTCHA_VERIFY_URL, data=form, timeout=10.0)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(HCAPTCHA_VERIFY_URL, data=form, timeout=10.0)
        result = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ hCaptcha verification error: {str(e)}")
        raise UpstreamError("Captcha verification unavailable", details=str(e)) from e

    if not result.get("success", False):
        error_codes = result.get("error-codes", [])
        logger.warning(f"❌ hCaptcha verification failed for IP: {ip} - Errors: {error_codes}")
        raise ValidationFailed("Captcha failed", details=", ".join(error_codes) or None)

    logger.info(f"✅ hCaptcha verification successful for IP: {ip}")
