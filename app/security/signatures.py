"""
Shopify signature checks.

App Proxy requests carry a hex HMAC-SHA256 in the ``signature`` query
parameter, computed over the remaining parameters:

  1. drop ``signature`` and infrastructure-injected keys (X-ARR-LOG-ID)
  2. sort keys by codepoint
  3. render ``key=value``; list values joined with commas, missing values as ``key=``
  4. concatenate the pairs with no separator
  5. HMAC-SHA256 with the app secret, hex encoded

Webhooks carry a base64 HMAC-SHA256 of the raw body in X-Shopify-Hmac-Sha256.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from typing import Mapping, Sequence, Union

from fastapi import HTTPException, Request

from app.core.config import settings
from app.core.logging import get_logger
from app.security.audit import AuditEventType, RequestMeta

logger = get_logger(__name__)

# Matched case-insensitively (keys are lower-cased before lookup)
EXCLUDED_PROXY_KEYS = frozenset({"signature", "x-arr-log-id"})

ParamValue = Union[str, Sequence[str], None]


def query_params_to_dict(query_params) -> dict[str, ParamValue]:
    """
    Flatten a Starlette QueryParams multi-dict: repeated keys become lists,
    single keys stay plain strings.
    """
    params: dict[str, ParamValue] = {}
    for key in query_params.keys():
        values = query_params.getlist(key)
        params[key] = values[0] if len(values) == 1 else list(values)
    return params


def _render_value(value: ParamValue) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(value)
    return str(value)


def build_proxy_message(params: Mapping[str, ParamValue]) -> str:
    keys = sorted(k for k in params if k.lower() not in EXCLUDED_PROXY_KEYS)
    return "".join(f"{key}={_render_value(params[key])}" for key in keys)


def compute_proxy_signature(params: Mapping[str, ParamValue], secret: str) -> str:
    message = build_proxy_message(params)
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def _find_signature(params: Mapping[str, ParamValue]) -> ParamValue:
    for key, value in params.items():
        if key.lower() == "signature":
            return value
    return None


def verify_app_proxy_signature(params: Mapping[str, ParamValue], secret: str) -> bool:
    """
    Returns True only for a well-formed signature matching the parameters.
    Never raises: malformed input is reported as a mismatch.
    """
    provided = _find_signature(params)
    if not provided or not isinstance(provided, str):
        return False

    expected = compute_proxy_signature(params, secret)

    try:
        provided_bytes = bytes.fromhex(provided)
        expected_bytes = bytes.fromhex(expected)
    except ValueError:
        return False

    if len(provided_bytes) != len(expected_bytes):
        return False

    return hmac.compare_digest(provided_bytes, expected_bytes)


def verify_webhook_hmac(raw_body: bytes, header_hmac: str | None, secret: str) -> bool:
    if not header_hmac or not secret:
        return False

    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()

    try:
        provided = base64.b64decode(header_hmac, validate=True)
    except (binascii.Error, ValueError):
        return False

    if len(provided) != len(digest):
        return False

    return hmac.compare_digest(provided, digest)


async def require_app_proxy_signature(request: Request) -> str | None:
    """
    FastAPI dependency gating every App Proxy route.
    Returns the proxied shop domain (may be None in unsigned dev mode).
    """
    audit_log = request.app.state.audit_log
    secret = settings.SHOPIFY_API_SECRET
    shop = request.query_params.get("shop")

    if not secret:
        if settings.is_production:
            logger.error("App Proxy: SHOPIFY_API_SECRET not configured in production - blocking request")
            audit_log.record(
                AuditEventType.invalid_signature,
                RequestMeta.from_request(request),
                details={"reason": "missing_api_secret_production", "path": request.url.path},
            )
            raise HTTPException(status_code=500, detail="Server configuration error")

        logger.warning("App Proxy: SHOPIFY_API_SECRET not configured (dev mode), skipping signature verification")
        return shop

    params = query_params_to_dict(request.query_params)
    if not verify_app_proxy_signature(params, secret):
        audit_log.record(
            AuditEventType.invalid_signature,
            RequestMeta.from_request(request),
            details={
                "reason": "app_proxy_signature_mismatch",
                "path": request.url.path,
                "shop": shop,
                "query_keys": sorted(k for k in params if k.lower() != "signature"),
            },
        )
        raise HTTPException(status_code=403, detail="Invalid signature")

    return shop
