import hashlib
import hmac
import os
from urllib.parse import urlencode

from app.db.session import AsyncSessionLocal
from app.services import store_service

SECRET = os.environ["SHOPIFY_API_SECRET"]
ADMIN_HEADERS = {"X-Admin-Key": os.environ["ADMIN_KEY"]}


def install_store(client, shop: str, name: str | None = None):
    async def _install():
        async with AsyncSessionLocal() as db:
            return await store_service.install_store(db, shop=shop, name=name or shop.split(".")[0])

    return client.portal.call(_install)


def uninstall_store(client, shop: str):
    async def _uninstall():
        async with AsyncSessionLocal() as db:
            return await store_service.mark_store_uninstalled(db, shop)

    return client.portal.call(_uninstall)


def flush_audit(client) -> None:
    client.portal.call(client.app.state.audit_log.flush)


def audit_rows(client, event_type: str | None = None, store_id: str | None = None) -> list[dict]:
    """Persisted audit rows, newest first, read through the admin API."""
    flush_audit(client)
    params = {"limit": 500}
    if event_type:
        params["event_type"] = event_type
    if store_id:
        params["store_id"] = store_id
    client.app.state.rate_limiter.store.clear()
    resp = client.get("/api/v1/admin/audit-logs", params=params, headers=ADMIN_HEADERS)
    assert resp.status_code == 200, resp.text
    return resp.json()["items"]


def sign_proxy_params(params: dict, secret: str = SECRET) -> dict:
    message = "".join(f"{k}={params[k]}" for k in sorted(params))
    signed = dict(params)
    signed["signature"] = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return signed


def proxy_url(path: str, params: dict) -> str:
    return f"{path}?{urlencode(sign_proxy_params(params))}"
