import base64
import hashlib
import hmac
import json

from helpers import SECRET, audit_rows, install_store


def _hmac(body: bytes, secret: str = SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def _post(client, shop, body: bytes, signature: str):
    return client.post(
        "/api/v1/webhooks/app-uninstalled",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Shopify-Hmac-Sha256": signature,
            "X-Shopify-Shop-Domain": shop,
        },
    )


def test_uninstall_deactivates_store(client):
    store = install_store(client, "uninstall-me.myshopify.com")
    assert client.get("/api/v1/pages", params={"shop": store.shopify_domain}).status_code == 200

    body = json.dumps({"id": 1, "domain": store.shopify_domain}).encode()
    resp = _post(client, store.shopify_domain, body, _hmac(body))
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    # the shop no longer resolves to a context
    assert client.get("/api/v1/pages", params={"shop": store.shopify_domain}).status_code == 401


def test_bad_hmac_is_rejected_and_audited(client):
    store = install_store(client, "keep-me.myshopify.com")
    body = b'{"id": 2}'

    resp = _post(client, store.shopify_domain, body, _hmac(body, "not-the-secret"))
    assert resp.status_code == 401

    # store untouched
    assert client.get("/api/v1/pages", params={"shop": store.shopify_domain}).status_code == 200

    rows = audit_rows(client, event_type="invalid_signature")
    assert any(r["shop"] == store.shopify_domain and r["details"]["reason"] == "webhook_hmac_mismatch" for r in rows)


def test_missing_headers_are_rejected(client):
    resp = client.post("/api/v1/webhooks/app-uninstalled", content=b"{}")
    assert resp.status_code == 401


def test_unknown_shop_is_acknowledged(client):
    body = b'{"id": 3}'
    resp = _post(client, "never-installed.myshopify.com", body, _hmac(body))
    assert resp.status_code == 200
