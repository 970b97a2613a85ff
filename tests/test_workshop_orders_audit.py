import pytest


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _login_token(client, username: str = "shop_owner") -> str:
    res = client.post(
        "/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "secret123"},
    )
    assert res.status_code == 201, res.text
    client.cookies.clear()
    return res.json()["access_token"]


def _create_product(client, headers, name: str = "Lobby bench") -> int:
    res = client.post(
        "/products",
        json={"name": name, "category": "Benches", "estimated_price": 300, "stock": 2},
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()["id"]


def test_workshop_order_lifecycle(test_context):
    client, _ = test_context
    headers = _auth_headers(_login_token(client))
    product_id = _create_product(client, headers)

    unknown = client.post(
        "/workshop-orders",
        json={"product_id": product_id + 10, "quantity": 1, "total_order_value": 100},
        headers=headers,
    )
    assert unknown.status_code == 404

    zero_quantity = client.post(
        "/workshop-orders",
        json={"product_id": product_id, "quantity": 0, "total_order_value": 100},
        headers=headers,
    )
    assert zero_quantity.status_code == 422

    created = client.post(
        "/workshop-orders",
        json={
            "product_id": product_id,
            "quantity": 4,
            "total_order_value": 1800,
            "material_cost": 300,
            "wood_cost": 550.25,
            "other_costs": 75,
            "notes": "Hotel lobby",
        },
        headers=headers,
    )
    assert created.status_code == 201, created.text
    order = created.json()
    assert order["product_name"] == "Lobby bench"
    assert order["total_cost"] == pytest.approx(925.25)
    assert order["profit"] == pytest.approx(874.75)

    defaults = client.post(
        "/workshop-orders",
        json={"product_id": product_id, "quantity": 1, "total_order_value": 250, "date": "2020-01-01"},
        headers=headers,
    )
    assert defaults.status_code == 201, defaults.text
    assert defaults.json()["material_cost"] == 0.0
    assert defaults.json()["notes"] == ""
    assert defaults.json()["profit"] == pytest.approx(250.0)

    listing = client.get("/workshop-orders", headers=headers)
    assert listing.status_code == 200
    assert [item["id"] for item in listing.json()["items"]] == [order["id"], defaults.json()["id"]]

    patched = client.patch(
        f"/workshop-orders/{order['id']}",
        json={"wood_cost": 600, "notes": "Kiln-dried oak"},
        headers=headers,
    )
    assert patched.status_code == 200, patched.text
    assert patched.json()["wood_cost"] == 600.0
    assert patched.json()["material_cost"] == 300.0
    assert patched.json()["total_cost"] == pytest.approx(975.0)
    assert patched.json()["notes"] == "Kiln-dried oak"

    negative_cost = client.patch(
        f"/workshop-orders/{order['id']}", json={"other_costs": -1}, headers=headers
    )
    assert negative_cost.status_code == 422

    deleted = client.delete(f"/workshop-orders/{order['id']}", headers=headers)
    assert deleted.status_code == 204
    assert client.patch(
        f"/workshop-orders/{order['id']}", json={"quantity": 2}, headers=headers
    ).status_code == 404
    assert client.delete(f"/workshop-orders/{order['id']}", headers=headers).status_code == 404

    # Orders do not touch stock.
    product = client.get(f"/products/{product_id}", headers=headers)
    assert product.json()["stock"] == 2


def test_audit_logs_record_mutations(test_context):
    client, _ = test_context
    token = _login_token(client)
    headers = _auth_headers(token)
    product_id = _create_product(client, headers)

    client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "add", "quantity": 3, "reason": "Restock"},
        headers=headers,
    )
    rejected = client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "subtract", "quantity": 50, "reason": "Sale"},
        headers=headers,
    )
    assert rejected.status_code == 400

    movements = client.get("/audit-logs?action=stock_movement.create", headers=headers)
    assert movements.status_code == 200, movements.text
    items = movements.json()["items"]
    assert len(items) == 1
    assert items[0]["metadata_json"]["stock_after"] == 5
    assert items[0]["target_type"] == "stock_movement"

    products = client.get("/audit-logs?target_type=product", headers=headers)
    assert [item["action"] for item in products.json()["items"]] == ["product.create"]

    everything = client.get("/audit-logs", headers=headers)
    actions = {item["action"] for item in everything.json()["items"]}
    assert {"user.register", "product.create", "stock_movement.create"} <= actions

    inverted = client.get("/audit-logs?start_date=2026-10-10&end_date=2026-10-01", headers=headers)
    assert inverted.status_code == 400
    assert inverted.json()["error"]["message"] == "end_date cannot be before start_date"


def test_health_endpoints_and_request_id(test_context):
    client, _ = test_context

    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["docs"] == "/docs"

    health = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert health.json() == {"ok": True}
    assert health.headers["X-Request-ID"] == "req-123"
    assert "X-API-Timeout-Hint-Ms" in health.headers

    missing = client.get("/products", headers={"X-Request-ID": "req-456"})
    assert missing.status_code == 401
    assert missing.json()["error"]["request_id"] == "req-456"
    assert missing.json()["error"]["path"] == "/products"
