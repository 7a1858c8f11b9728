import uuid

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from helpers import audit_rows
from app.security.authorization import AccessGuard
from app.security.context import StoreContext

STORE_A = uuid.UUID("6f1c7d4e-0000-4000-8000-00000000000a")
STORE_B = uuid.UUID("6f1c7d4e-0000-4000-8000-00000000000b")


class RecordingAuditLog:
    def __init__(self):
        self.events = []

    def record(self, event_type, meta, store_id=None, attempted_store_id=None, details=None):
        self.events.append(
            {
                "event_type": event_type.value,
                "endpoint": meta.endpoint,
                "store_id": store_id,
                "attempted_store_id": attempted_store_id,
                "details": details or {},
            }
        )


def _request(path="/api/v1/pages/1"):
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": b"",
            "headers": [(b"user-agent", b"pytest")],
            "client": ("10.0.0.1", 1234),
            "server": ("test", 80),
            "scheme": "http",
        }
    )


def _guard(context):
    audit = RecordingAuditLog()
    return AccessGuard(_request(), context, audit), audit


def _ctx(store_id):
    return StoreContext(store_id=store_id, shop="shop.myshopify.com", name="Shop")


def test_global_resource_is_allowed_without_context():
    guard, audit = _guard(None)
    guard.check(None)
    assert audit.events == []


def test_owned_resource_without_context_is_401():
    guard, audit = _guard(None)
    with pytest.raises(HTTPException) as exc:
        guard.check(STORE_A, resource="page")
    assert exc.value.status_code == 401
    assert exc.value.detail == "Store context required"
    assert len(audit.events) == 1
    assert audit.events[0]["event_type"] == "unauthorized"
    assert audit.events[0]["attempted_store_id"] == STORE_A


def test_other_store_is_403_and_audited_as_cross_tenant():
    guard, audit = _guard(_ctx(STORE_B))
    with pytest.raises(HTTPException) as exc:
        guard.check(STORE_A, resource="page")
    assert exc.value.status_code == 403
    assert exc.value.detail == "Access denied"

    assert len(audit.events) == 1
    event = audit.events[0]
    assert event["event_type"] == "cross_tenant_attempt"
    assert event["store_id"] == STORE_B
    assert event["attempted_store_id"] == STORE_A
    assert event["endpoint"] == "/api/v1/pages/1"


def test_owner_is_allowed():
    guard, audit = _guard(_ctx(STORE_A))
    guard.check(STORE_A)
    guard.check(str(STORE_A))
    assert audit.events == []


def test_require_context():
    guard, audit = _guard(None)
    with pytest.raises(HTTPException) as exc:
        guard.require_context("page")
    assert exc.value.status_code == 401
    assert len(audit.events) == 1
    assert audit.events[0]["event_type"] == "unauthorized"

    guard, _ = _guard(_ctx(STORE_A))
    assert guard.require_context().store_id == STORE_A


def test_owner_for_create_comes_from_context_only():
    assert _guard(None)[0].owner_for_create() is None
    assert _guard(_ctx(STORE_A))[0].owner_for_create() == STORE_A


# -----------------------------
# Route level
# -----------------------------
def _create_page(client, store, slug="promo"):
    resp = client.post(
        "/api/v1/pages",
        params={"shop": store.shopify_domain},
        json={"title": "Promo", "slug": slug, "status": "published"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_page_created_for_context_store(client, store_a):
    page = _create_page(client, store_a, slug="owned-page")
    assert page["store_id"] == str(store_a.id)


def test_client_supplied_store_id_in_body_is_ignored(client, store_a, store_b):
    resp = client.post(
        "/api/v1/pages",
        params={"shop": store_a.shopify_domain},
        json={"title": "Sneaky", "slug": "sneaky", "store_id": str(store_b.id)},
    )
    assert resp.status_code == 201
    assert resp.json()["store_id"] == str(store_a.id)


def test_cross_tenant_page_read_is_denied_and_audited(client, store_a, store_b):
    page = _create_page(client, store_a, slug="private-page")

    resp = client.get(f"/api/v1/pages/{page['id']}", params={"storeId": str(store_b.id)})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Access denied"

    rows = audit_rows(client, event_type="cross_tenant_attempt", store_id=str(store_b.id))
    match = [r for r in rows if r["endpoint"] == f"/api/v1/pages/{page['id']}"]
    assert len(match) == 1
    assert match[0]["store_id"] == str(store_b.id)
    assert match[0]["attempted_store_id"] == str(store_a.id)


def test_owned_page_without_context_is_401(client, store_a):
    page = _create_page(client, store_a, slug="needs-context")
    resp = client.patch(f"/api/v1/pages/{page['id']}", json={"title": "Changed"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Store context required"


def test_owner_can_update_and_delete(client, store_a):
    page = _create_page(client, store_a, slug="mine")
    params = {"shop": store_a.shopify_domain}

    resp = client.patch(f"/api/v1/pages/{page['id']}", params=params, json={"title": "Changed"})
    assert resp.status_code == 200
    assert resp.json()["title"] == "Changed"

    assert client.delete(f"/api/v1/pages/{page['id']}", params=params).status_code == 204
    assert client.get(f"/api/v1/pages/{page['id']}", params=params).status_code == 404


def test_listing_requires_context_and_is_scoped(client, store_a, store_b):
    _create_page(client, store_a, slug="listed-a")
    _create_page(client, store_b, slug="listed-b")

    assert client.get("/api/v1/pages").status_code == 401

    resp = client.get("/api/v1/pages", params={"shop": store_a.shopify_domain})
    assert resp.status_code == 200
    assert {p["store_id"] for p in resp.json()} == {str(store_a.id)}


def test_anonymous_page_is_global(client, store_b):
    resp = client.post("/api/v1/pages", json={"title": "Global", "slug": "global-page"})
    assert resp.status_code == 201
    page = resp.json()
    assert page["store_id"] is None

    # anyone may read a global page
    assert client.get(f"/api/v1/pages/{page['id']}").status_code == 200
    assert client.get(f"/api/v1/pages/{page['id']}", params={"storeId": str(store_b.id)}).status_code == 200


def test_store_update_cannot_touch_domain(client, store_a):
    resp = client.patch(
        f"/api/v1/stores/{store_a.id}",
        params={"storeId": str(store_a.id)},
        json={"name": "Alpha Renamed", "shopify_domain": "evil.myshopify.com"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Alpha Renamed"
    assert body["shopify_domain"] == store_a.shopify_domain
    assert "shopify_access_token" not in body


def test_cross_tenant_store_read_denied(client, store_a, store_b):
    resp = client.get(f"/api/v1/stores/{store_a.id}", params={"shop": store_b.shopify_domain})
    assert resp.status_code == 403


def test_tracking_number_for_other_store_denied(client, store_a, store_b):
    resp = client.post(
        "/api/v1/tracking-numbers",
        params={"shop": store_b.shopify_domain},
        json={"store_id": str(store_a.id), "phone_number": "+1 555 0100"},
    )
    assert resp.status_code == 403


def test_ab_test_variant_must_use_own_store_page(client, store_a, store_b):
    own = _create_page(client, store_a, slug="ab-original")
    other = _create_page(client, store_b, slug="ab-foreign")
    params = {"shop": store_a.shopify_domain}

    resp = client.post(
        "/api/v1/ab-tests",
        params=params,
        json={"name": "Hero test", "original_page_id": own["id"]},
    )
    assert resp.status_code == 201
    test = resp.json()
    assert test["store_id"] == str(store_a.id)

    resp = client.post(
        f"/api/v1/ab-tests/{test['id']}/variants",
        params=params,
        json={"page_id": other["id"], "name": "B"},
    )
    assert resp.status_code == 403

    resp = client.post(
        f"/api/v1/ab-tests/{test['id']}/variants",
        params=params,
        json={"page_id": own["id"], "name": "A", "is_control": True},
    )
    assert resp.status_code == 201

    # the other store cannot even see the test
    resp = client.get(f"/api/v1/ab-tests/{test['id']}", params={"shop": store_b.shopify_domain})
    assert resp.status_code == 403
