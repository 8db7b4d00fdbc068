"""
HTTP surface tests: envelopes, status codes and the guest checkout flow.
"""
from datetime import timedelta

import pytest

from storefront.time_utils import utcnow


def _iso(dt):
    return dt.isoformat() + "Z"


@pytest.fixture
def product_payload():
    return {
        "name": "Wireless Headphones",
        "description": "Noise cancelling, 30-hour battery.",
        "category": "Electronics",
        "base_price": "199.99",
        "images": ["https://example.com/headphones.jpg"],
        "variants": [
            {"id": "black", "name": "Black", "price": "199.99", "sku": "WH-BLACK",
             "inventory": 5, "attributes": {"color": "black"}},
            {"id": "blue", "name": "Blue", "price": 219.99, "sku": "WH-BLUE",
             "inventory": 2, "attributes": {"color": "blue"}},
        ],
    }


@pytest.fixture
def product_id(client, product_payload):
    resp = client.post("/api/products", json=product_payload)
    assert resp.status_code == 201
    return resp.get_json()["data"]["id"]


def _promo_payload(**overrides):
    now = utcnow()
    payload = {
        "code": "welcome10",
        "name": "Welcome 10%",
        "type": "percentage",
        "value": 10,
        "max_discount_amount": "20.00",
        "valid_from": _iso(now - timedelta(days=1)),
        "valid_until": _iso(now + timedelta(days=30)),
    }
    payload.update(overrides)
    return payload


def test_index_and_health(client):
    assert client.get("/").get_json()["success"] is True

    resp = client.get("/health")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "healthy"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "error": "Not Found - /api/nowhere"}


def test_create_and_fetch_product(client, product_id):
    resp = client.get(f"/api/products/{product_id}")
    data = resp.get_json()["data"]

    assert resp.status_code == 200
    assert data["base_price"] == "199.99"
    assert [v["id"] for v in data["variants"]] == ["black", "blue"]
    assert data["variants"][1]["price"] == "219.99"


def test_create_product_validation_errors(client, product_payload):
    product_payload["variants"][1]["sku"] = "WH-BLACK"
    resp = client.post("/api/products", json=product_payload)
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["success"] is False
    assert body["details"][0]["field"] == "variants"

    resp = client.post("/api/products", json={"name": "Only a name"})
    assert resp.status_code == 400
    assert {d["field"] for d in resp.get_json()["details"]} == {
        "description", "category", "base_price", "variants",
    }


def test_duplicate_sku_is_409(client, product_payload, product_id):
    product_payload["variants"] = [product_payload["variants"][0]]
    resp = client.post("/api/products", json=product_payload)
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "conflict"


def test_list_filter_and_soft_delete(client, product_id):
    listed = client.get("/api/products?category=Electronics&search=wireless").get_json()["data"]
    assert listed["pagination"]["total"] == 1

    assert client.get("/api/products/categories").get_json()["data"] == [
        {"name": "Electronics", "product_count": 1}
    ]

    resp = client.delete(f"/api/products/{product_id}")
    assert resp.get_json() == {"success": True, "message": "Product deleted successfully"}
    assert client.get(f"/api/products/{product_id}").status_code == 404
    assert client.get("/api/products").get_json()["data"]["pagination"]["total"] == 0


def test_bad_pagination_is_rejected(client):
    assert client.get("/api/products?limit=1000").status_code == 400
    assert client.get("/api/products?page=0").status_code == 400


def test_update_product(client, product_id):
    resp = client.put(f"/api/products/{product_id}", json={"name": "Renamed", "base_price": 150})
    data = resp.get_json()["data"]
    assert resp.status_code == 200
    assert data["name"] == "Renamed"
    assert data["base_price"] == "150.00"
    assert len(data["variants"]) == 2


def test_guest_token_format_is_checked(client):
    resp = client.get("/api/cart/not-a-token")
    assert resp.status_code == 400
    assert resp.get_json()["details"][0]["field"] == "guest_token"


def test_cart_flow(client, product_id):
    created = client.post("/api/cart")
    assert created.status_code == 201
    token = created.get_json()["data"]["guest_token"]

    resp = client.post(f"/api/cart/{token}/items", json={"product_id": product_id, "variant_id": "black", "quantity": 2})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["total_amount"] == "399.98"

    resp = client.post(f"/api/cart/{token}/items", json={"product_id": product_id, "variant_id": "blue", "quantity": 3})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "insufficient_inventory"

    resp = client.put(f"/api/cart/{token}/items/{product_id}/black", json={"quantity": 1})
    assert resp.get_json()["data"]["items"][0]["quantity"] == 1

    view = client.get(f"/api/cart/{token}").get_json()["data"]
    assert view["items"][0]["product"]["name"] == "Wireless Headphones"
    assert view["final_total"] == "199.99"

    resp = client.delete(f"/api/cart/{token}/items/{product_id}/black")
    assert resp.get_json()["data"]["items"] == []

    resp = client.delete(f"/api/cart/{token}/clear")
    assert resp.status_code == 200


def test_cart_item_payload_validation(client, guest_token, product_id):
    resp = client.post(f"/api/cart/{guest_token}/items", json={"product_id": product_id, "variant_id": "black", "quantity": 0})
    assert resp.status_code == 400

    resp = client.post(f"/api/cart/{guest_token}/items", json={"product_id": product_id, "variant_id": "black", "quantity": True})
    assert resp.status_code == 400


def test_promo_admin(client):
    resp = client.post("/api/promos", json=_promo_payload())
    assert resp.status_code == 201
    assert resp.get_json()["data"]["code"] == "WELCOME10"

    assert client.post("/api/promos", json=_promo_payload()).status_code == 409
    assert client.post("/api/promos", json=_promo_payload(code="TOOMUCH", value=150)).status_code == 400

    now = utcnow()
    backwards = _promo_payload(code="BACKWARDS", valid_from=_iso(now), valid_until=_iso(now - timedelta(days=1)))
    assert client.post("/api/promos", json=backwards).status_code == 400

    codes = [p["code"] for p in client.get("/api/promos").get_json()["data"]]
    assert codes == ["WELCOME10"]


def test_promo_validate_apply_remove(client, guest_token, product_id):
    client.post("/api/promos", json=_promo_payload())
    client.post(f"/api/cart/{guest_token}/items", json={"product_id": product_id, "variant_id": "black", "quantity": 2})

    preview = client.post(f"/api/promos/{guest_token}/validate", json={"promo_code": "welcome10"}).get_json()["data"]
    assert preview["discount_amount"] == "20.00"
    assert client.get(f"/api/cart/{guest_token}").get_json()["data"]["applied_promo"] is None

    applied = client.post(f"/api/promos/{guest_token}/apply", json={"promo_code": "WELCOME10"}).get_json()["data"]
    assert applied["final_total"] == "379.98"

    resp = client.post(f"/api/promos/{guest_token}/apply", json={"promo_code": "NOPE"})
    assert resp.status_code == 404
    assert resp.get_json()["reason"] == "not_found"

    for _ in range(2):
        resp = client.delete(f"/api/promos/{guest_token}/remove")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["applied_promo"] is None


def test_apply_promo_minimum_not_met(client, guest_token, product_id):
    client.post("/api/promos", json=_promo_payload(code="BIG", minimum_order_amount=1000))
    client.post(f"/api/cart/{guest_token}/items", json={"product_id": product_id, "variant_id": "black", "quantity": 1})

    resp = client.post(f"/api/promos/{guest_token}/apply", json={"promo_code": "BIG"})
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["reason"] == "minimum_not_met"


def test_apply_promo_to_missing_cart(client, guest_token):
    resp = client.post(f"/api/promos/{guest_token}/apply", json={"promo_code": "ANY"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "empty_cart"


def test_checkout_and_order_admin(client, guest_token, product_id, shipping_address):
    client.post("/api/promos", json=_promo_payload())
    client.post(f"/api/cart/{guest_token}/items", json={"product_id": product_id, "variant_id": "black", "quantity": 2})
    client.post(f"/api/promos/{guest_token}/apply", json={"promo_code": "WELCOME10"})

    resp = client.post(f"/api/orders/{guest_token}", json={"shipping_address": shipping_address})
    assert resp.status_code == 201
    order = resp.get_json()["data"]
    assert order["total_amount"] == "379.98"
    assert order["promo_code"] == "WELCOME10"
    number = order["order_number"]

    assert client.get(f"/api/cart/{guest_token}").status_code == 404
    product = client.get(f"/api/products/{product_id}").get_json()["data"]
    assert product["variants"][0]["inventory"] == 3

    assert client.get(f"/api/orders/{number}").get_json()["data"]["status"] == "pending"
    assert len(client.get(f"/api/orders/guest/{guest_token}").get_json()["data"]) == 1

    resp = client.put(f"/api/orders/{number}/status", json={"status": "shipped"})
    assert resp.get_json()["data"]["status"] == "shipped"

    resp = client.put(f"/api/orders/{number}/status", json={"status": "teleported"})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "invalid_status"
    assert client.get(f"/api/orders/{number}").get_json()["data"]["status"] == "shipped"

    listed = client.get("/api/orders?status=shipped").get_json()["data"]
    assert [o["order_number"] for o in listed["orders"]] == [number]

    assert client.get("/api/orders/ORD-0-NOPE00").status_code == 404


def test_checkout_validation(client, guest_token, shipping_address):
    shipping_address["email"] = "not-an-email"
    resp = client.post(f"/api/orders/{guest_token}", json={"shipping_address": shipping_address})
    assert resp.status_code == 400
    assert resp.get_json()["details"][0]["field"] == "shipping_address.email"

    shipping_address["email"] = "ok@example.com"
    resp = client.post(f"/api/orders/{guest_token}", json={"shipping_address": shipping_address})
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "empty_cart"
