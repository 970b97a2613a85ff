import pytest


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _login_token(client, username: str = "cash_owner") -> str:
    res = client.post(
        "/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "secret123"},
    )
    assert res.status_code == 201, res.text
    client.cookies.clear()
    return res.json()["access_token"]


def _cashflow(client, headers, **overrides):
    payload = {
        "type": "income",
        "amount": 100,
        "category": "Sales",
        "description": "Chair sale",
    }
    payload.update(overrides)
    return client.post("/cashflows", json=payload, headers=headers)


def test_cashflows_record_and_filter(test_context):
    client, _ = test_context
    headers = _auth_headers(_login_token(client))

    income = _cashflow(client, headers, amount=2500, date="2020-10-01")
    assert income.status_code == 201, income.text
    assert income.json()["amount"] == 2500.0
    assert income.json()["date"].startswith("2020-10-01")

    expense = _cashflow(
        client,
        headers,
        type="expense",
        amount=899.999,
        category="Materials",
        description="Walnut boards",
        date="2020-10-05T14:30:00",
    )
    assert expense.status_code == 201, expense.text
    assert expense.json()["amount"] == 900.0

    undated = _cashflow(client, headers, amount=10)
    assert undated.status_code == 201, undated.text

    only_expenses = client.get("/cashflows?type=expense", headers=headers)
    assert only_expenses.status_code == 200
    assert [item["category"] for item in only_expenses.json()["items"]] == ["Materials"]

    october = client.get(
        "/cashflows?start_date=2020-10-01&end_date=2020-10-03", headers=headers
    )
    assert october.status_code == 200
    assert [item["amount"] for item in october.json()["items"]] == [2500.0]

    everything = client.get("/cashflows", headers=headers)
    assert everything.json()["pagination"]["total"] == 3

    inverted = client.get("/cashflows?start_date=2020-10-05&end_date=2020-10-01", headers=headers)
    assert inverted.status_code == 400

    assert _cashflow(client, headers, amount=-5).status_code == 422
    assert _cashflow(client, headers, type="transfer").status_code == 422
    assert _cashflow(client, headers, description=" ").status_code == 422


def test_dashboard_stats(test_context):
    client, _ = test_context
    headers = _auth_headers(_login_token(client))

    empty = client.get("/dashboard/stats", headers=headers)
    assert empty.status_code == 200, empty.text
    assert empty.json()["total_products"] == 0
    assert empty.json()["current_capital"] == 0.0

    for name, price, stock in (("Stool", 100, 5), ("Cabinet", 200, 20)):
        res = client.post(
            "/products",
            json={"name": name, "category": "Furniture", "estimated_price": price, "stock": stock},
            headers=headers,
        )
        assert res.status_code == 201, res.text

    assert _cashflow(client, headers, amount=2500).status_code == 201
    assert _cashflow(client, headers, type="expense", amount=900, category="Wood").status_code == 201
    saved = client.post("/settings", json={"key": "initial_capital", "value": "5000"}, headers=headers)
    assert saved.status_code == 200, saved.text

    stats = client.get("/dashboard/stats", headers=headers)
    assert stats.status_code == 200, stats.text
    body = stats.json()
    assert body["total_products"] == 2
    assert body["total_stock"] == 25
    assert body["total_stock_value"] == pytest.approx(4500.0)
    assert body["low_stock_count"] == 1
    assert body["low_stock_threshold"] == 10
    assert body["total_income"] == pytest.approx(2500.0)
    assert body["total_expense"] == pytest.approx(900.0)
    assert body["net_balance"] == pytest.approx(1600.0)
    assert body["initial_capital"] == pytest.approx(5000.0)
    assert body["current_capital"] == pytest.approx(6600.0)

    client.post("/settings", json={"key": "initial_capital", "value": "lots"}, headers=headers)
    unparsable = client.get("/dashboard/stats", headers=headers).json()
    assert unparsable["initial_capital"] == 0.0
    assert unparsable["current_capital"] == pytest.approx(1600.0)


def test_settings_upsert_and_lookup(test_context):
    client, _ = test_context
    headers = _auth_headers(_login_token(client))

    missing = client.get("/settings/initial_capital", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["message"] == "Setting not found"

    no_key = client.post("/settings", json={"key": "  ", "value": "1"}, headers=headers)
    assert no_key.status_code == 400
    no_value = client.post("/settings", json={"key": "initial_capital"}, headers=headers)
    assert no_value.status_code == 400

    created = client.post("/settings", json={"key": "initial_capital", "value": 7500}, headers=headers)
    assert created.status_code == 200, created.text
    assert created.json()["value"] == "7500"

    overwritten = client.post(
        "/settings", json={"key": "initial_capital", "value": "8000"}, headers=headers
    )
    assert overwritten.json()["id"] == created.json()["id"]
    assert overwritten.json()["value"] == "8000"

    client.post("/settings", json={"key": "currency", "value": "EUR"}, headers=headers)
    fetched = client.get("/settings/initial_capital", headers=headers)
    assert fetched.json()["value"] == "8000"
    listing = client.get("/settings", headers=headers)
    assert [item["key"] for item in listing.json()] == ["currency", "initial_capital"]
