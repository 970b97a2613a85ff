from sqlalchemy import func, select, update

from workshop_ledger.models.inventory import ProductStock, StockMovement
from workshop_ledger.models.product import Product
from workshop_ledger.models.workshop_order import WorkshopOrder


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _login_token(client, username: str = "stock_owner") -> str:
    res = client.post(
        "/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "secret123"},
    )
    assert res.status_code == 201, res.text
    client.cookies.clear()
    return res.json()["access_token"]


def _create_product(client, token: str, *, name: str = "Oak table", stock: int = 10, price: float = 450.0):
    res = client.post(
        "/products",
        json={"name": name, "category": "Tables", "estimated_price": price, "stock": stock},
        headers=_auth_headers(token),
    )
    assert res.status_code == 201, res.text
    return res.json()


def _product_stock(client, token: str, product_id: int) -> int:
    res = client.get(f"/products/{product_id}", headers=_auth_headers(token))
    assert res.status_code == 200, res.text
    return res.json()["stock"]


def test_stock_flow_over_http(test_context):
    client, session_local = test_context
    token = _login_token(client)
    headers = _auth_headers(token)
    product = _create_product(client, token, stock=10)
    product_id = product["id"]
    assert product["stock"] == 10
    assert product["estimated_price"] == 450.0

    rejected = client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "subtract", "quantity": 15, "reason": "Sale"},
        headers=headers,
    )
    assert rejected.status_code == 400
    assert rejected.json()["error"]["message"] == "Insufficient stock"
    assert rejected.json()["error"]["code"] == "bad_request"
    assert _product_stock(client, token, product_id) == 10

    added = client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "add", "quantity": 5, "reason": "Restock"},
        headers=headers,
    )
    assert added.status_code == 201, added.text
    assert added.json()["product_stock"] == 15
    assert added.json()["note"] == ""

    entry = client.post(
        "/product-stock",
        json={"product_id": product_id, "color": "Walnut", "quantity": 3, "workshop": "North shed"},
        headers=headers,
    )
    assert entry.status_code == 201, entry.text
    entry_id = entry.json()["id"]
    assert entry.json()["product_stock"] == 18

    moved = client.patch(
        f"/product-stock/{entry_id}",
        json={"product_id": product_id + 1, "quantity": 2},
        headers=headers,
    )
    assert moved.status_code == 400
    assert moved.json()["error"]["message"] == "Cannot change product ID of a stock entry"

    shrunk = client.patch(f"/product-stock/{entry_id}", json={"quantity": 1}, headers=headers)
    assert shrunk.status_code == 200, shrunk.text
    assert shrunk.json()["quantity"] == 1
    assert shrunk.json()["product_stock"] == 16

    renamed = client.patch(f"/product-stock/{entry_id}", json={"color": "Ash"}, headers=headers)
    assert renamed.status_code == 200, renamed.text
    assert renamed.json()["color"] == "Ash"
    assert renamed.json()["product_stock"] == 16

    listing = client.get(f"/product-stock?product_id={product_id}", headers=headers)
    assert listing.status_code == 200
    assert [item["id"] for item in listing.json()["items"]] == [entry_id]

    deleted = client.delete(f"/product-stock/{entry_id}", headers=headers)
    assert deleted.status_code == 204
    assert _product_stock(client, token, product_id) == 15
    assert client.get(f"/product-stock/{entry_id}", headers=headers).status_code == 404

    movements = client.get(f"/stock-movements?product_id={product_id}", headers=headers)
    assert movements.status_code == 200
    reasons = [item["reason"] for item in movements.json()["items"]]
    assert reasons == ["Restock", "Initial stock"]
    assert movements.json()["pagination"]["total"] == 2

    audit = client.get("/stock-audit", headers=headers)
    assert audit.status_code == 200, audit.text
    assert audit.json() == {"checked_products": 1, "drifted_products": 0, "items": []}

    with session_local() as db:
        assert db.execute(select(func.count(ProductStock.id))).scalar_one() == 0


def test_stock_endpoints_validate_input(test_context):
    client, _ = test_context
    token = _login_token(client)
    headers = _auth_headers(token)
    product_id = _create_product(client, token, stock=2)["id"]

    zero = client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "add", "quantity": 0, "reason": "Restock"},
        headers=headers,
    )
    assert zero.status_code == 422

    bad_type = client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "transfer", "quantity": 1, "reason": "Restock"},
        headers=headers,
    )
    assert bad_type.status_code == 422

    missing_product = client.post(
        "/stock-movements",
        json={"product_id": product_id + 50, "type": "add", "quantity": 1, "reason": "Restock"},
        headers=headers,
    )
    assert missing_product.status_code == 404
    assert missing_product.json()["error"]["message"] == "Product not found"

    blank_color = client.post(
        "/product-stock",
        json={"product_id": product_id, "color": "  ", "quantity": 1, "workshop": "A"},
        headers=headers,
    )
    assert blank_color.status_code == 422

    negative_entry = client.post(
        "/product-stock",
        json={"product_id": product_id, "color": "Oak", "quantity": -1, "workshop": "A"},
        headers=headers,
    )
    assert negative_entry.status_code == 422

    missing_entry = client.patch("/product-stock/999", json={"quantity": 2}, headers=headers)
    assert missing_entry.status_code == 404
    assert client.delete("/product-stock/999", headers=headers).status_code == 404

    empty_patch = client.patch("/product-stock/999", json={}, headers=headers)
    assert empty_patch.status_code == 422

    assert _product_stock(client, token, product_id) == 2


def test_location_delete_blocked_when_stock_already_sold(test_context):
    client, _ = test_context
    token = _login_token(client)
    headers = _auth_headers(token)
    product_id = _create_product(client, token, stock=0)["id"]

    entry = client.post(
        "/product-stock",
        json={"product_id": product_id, "color": "Oak", "quantity": 4, "workshop": "A"},
        headers=headers,
    )
    assert entry.status_code == 201, entry.text
    sold = client.post(
        "/stock-movements",
        json={"product_id": product_id, "type": "subtract", "quantity": 4, "reason": "Sale"},
        headers=headers,
    )
    assert sold.status_code == 201, sold.text
    assert sold.json()["product_stock"] == 0

    blocked = client.delete(f"/product-stock/{entry.json()['id']}", headers=headers)
    assert blocked.status_code == 400
    assert blocked.json()["error"]["message"] == "Insufficient stock"
    assert client.get(f"/product-stock/{entry.json()['id']}", headers=headers).status_code == 200


def test_stock_audit_detects_and_repairs_drift(test_context):
    client, session_local = test_context
    token = _login_token(client)
    headers = _auth_headers(token)
    product_id = _create_product(client, token, stock=6)["id"]
    _create_product(client, token, name="Pine shelf", stock=2)

    with session_local() as db:
        db.execute(update(Product).where(Product.id == product_id).values(stock=40))
        db.commit()

    report = client.get("/stock-audit", headers=headers)
    assert report.status_code == 200, report.text
    body = report.json()
    assert body["checked_products"] == 2
    assert body["drifted_products"] == 1
    assert body["items"] == [
        {
            "product_id": product_id,
            "product_name": "Oak table",
            "stored_stock": 40,
            "expected_stock": 6,
            "drift": 34,
        }
    ]

    full = client.get("/stock-audit?include_consistent=true", headers=headers)
    assert len(full.json()["items"]) == 2

    repaired = client.post(f"/stock-audit/{product_id}/repair", headers=headers)
    assert repaired.status_code == 200, repaired.text
    assert repaired.json() == {
        "product_id": product_id,
        "stock_before": 40,
        "stock_after": 6,
        "repaired": True,
    }
    assert _product_stock(client, token, product_id) == 6

    again = client.post(f"/stock-audit/{product_id}/repair", headers=headers)
    assert again.json()["repaired"] is False

    assert client.post("/stock-audit/999/repair", headers=headers).status_code == 404
    assert client.get("/stock-audit?product_id=999", headers=headers).status_code == 404


def test_product_crud_and_cascade_delete(test_context):
    client, session_local = test_context
    token = _login_token(client)
    headers = _auth_headers(token)
    product = _create_product(client, token, stock=3)
    product_id = product["id"]
    _create_product(client, token, name="Walnut desk", stock=0, price=800.0)

    assert client.get("/products/999", headers=headers).status_code == 404

    searched = client.get("/products?q=walnut", headers=headers)
    assert [item["name"] for item in searched.json()["items"]] == ["Walnut desk"]
    by_category = client.get("/products?category=tables", headers=headers)
    assert by_category.json()["pagination"]["total"] == 2

    stock_write = client.patch(f"/products/{product_id}", json={"stock": 99}, headers=headers)
    assert stock_write.status_code == 422

    updated = client.patch(
        f"/products/{product_id}",
        json={"estimated_price": 480.5, "image_url": "https://example.com/table.jpg"},
        headers=headers,
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["estimated_price"] == 480.5
    assert updated.json()["image_url"] == "https://example.com/table.jpg"
    assert updated.json()["stock"] == 3

    negative_price = client.post(
        "/products",
        json={"name": "Bad", "category": "Tables", "estimated_price": -1},
        headers=headers,
    )
    assert negative_price.status_code == 422

    client.post(
        "/product-stock",
        json={"product_id": product_id, "color": "Oak", "quantity": 2, "workshop": "A"},
        headers=headers,
    )
    client.post(
        "/workshop-orders",
        json={"product_id": product_id, "quantity": 1, "total_order_value": 500},
        headers=headers,
    )

    deleted = client.delete(f"/products/{product_id}", headers=headers)
    assert deleted.status_code == 204
    assert client.delete(f"/products/{product_id}", headers=headers).status_code == 404
    assert client.get(f"/stock-movements?product_id={product_id}", headers=headers).status_code == 404

    with session_local() as db:
        for model in (StockMovement, ProductStock, WorkshopOrder):
            remaining = db.execute(
                select(func.count(model.id)).where(model.product_id == product_id)
            ).scalar_one()
            assert remaining == 0
