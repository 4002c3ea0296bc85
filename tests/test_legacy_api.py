def test_seeded_records(legacy_client):
    transactions = legacy_client.get("/api/transactions").json()
    assert [t["description"] for t in transactions] == ["Salary", "Rent"]
    assert legacy_client.get("/api/budgets/1").json()["amount"] == 3000


def test_create_then_read_back(legacy_client):
    response = legacy_client.post(
        "/api/transactions",
        json={"amount": "42.50", "description": "Lunch", "date": "2025-06-10", "type": "expense"},
    )
    assert response.status_code == 201
    created = response.json()
    assert created["category"] == "Uncategorized"
    assert created["amount"] == 42.5

    fetched = legacy_client.get(f"/api/transactions/{created['id']}").json()
    assert fetched == created


def test_missing_fields(legacy_client):
    response = legacy_client.post("/api/transactions", json={"amount": 10, "description": "x", "type": "expense"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}

    zero = legacy_client.post(
        "/api/transactions", json={"amount": 0, "description": "x", "date": "2025-06-10", "type": "expense"}
    )
    assert zero.status_code == 400

    assert legacy_client.post("/api/budgets", json={"name": "B", "amount": 5}).status_code == 400


def test_malformed_fields(legacy_client):
    bad_amount = legacy_client.post(
        "/api/transactions", json={"amount": "abc", "description": "x", "date": "2025-06-10", "type": "expense"}
    )
    assert bad_amount.json() == {"error": "Invalid amount"}
    bad_type = legacy_client.post(
        "/api/transactions", json={"amount": 1, "description": "x", "date": "2025-06-10", "type": "gift"}
    )
    assert bad_type.status_code == 400


def test_unknown_ids(legacy_client):
    assert legacy_client.get("/api/transactions/nope").status_code == 404
    assert legacy_client.put("/api/transactions/nope", json={"amount": 1}).json() == {"error": "Transaction not found"}
    assert legacy_client.delete("/api/budgets/nope").status_code == 404


def test_update_keeps_unset_fields(legacy_client):
    response = legacy_client.put("/api/transactions/2", json={"amount": "900", "description": ""})
    assert response.status_code == 200
    assert response.json() == {
        "id": "2",
        "amount": 900.0,
        "description": "Rent",
        "date": "2025-06-05",
        "type": "expense",
        "category": "Housing",
    }


def test_budget_category_can_be_cleared(legacy_client):
    created = legacy_client.post(
        "/api/budgets",
        json={"name": "Food", "amount": 200, "period": "monthly", "startDate": "2025-06-01", "category": "Food"},
    ).json()
    assert created["category"] == "Food"

    kept = legacy_client.put(f"/api/budgets/{created['id']}", json={"name": "Food & drink"}).json()
    assert kept["category"] == "Food"

    cleared = legacy_client.put(f"/api/budgets/{created['id']}", json={"category": None}).json()
    assert cleared["category"] is None


def test_delete(legacy_client):
    response = legacy_client.delete("/api/transactions/1")
    assert response.status_code == 204
    assert response.content == b""
    assert legacy_client.get("/api/transactions/1").status_code == 404


def test_summary(legacy_client):
    summary = legacy_client.get("/api/summary").json()
    assert summary["totalIncome"] == 2500
    assert summary["totalExpenses"] == 800
    assert summary["netBalance"] == 1700
    assert summary["budgetAmount"] == 3000
    assert summary["budgetRemaining"] == 2200
    assert summary["spendingByCategory"] == [{"category": "Housing", "amount": 800}]
    assert [t["id"] for t in summary["recentTransactions"]] == ["2", "1"]


def test_summary_uses_first_budget_when_all_have_categories(legacy_client):
    legacy_client.delete("/api/budgets/1")
    legacy_client.post(
        "/api/budgets",
        json={"name": "Food", "amount": 300, "period": "monthly", "startDate": "2025-06-01", "category": "Food"},
    )
    legacy_client.post(
        "/api/budgets",
        json={"name": "Fun", "amount": 100, "period": "weekly", "startDate": "2025-06-01", "category": "Fun"},
    )
    summary = legacy_client.get("/api/summary").json()
    assert summary["budgetAmount"] == 300
    assert summary["budgetRemaining"] == 0


def test_recent_transactions_limited_to_five(legacy_client):
    for day in range(10, 16):
        legacy_client.post(
            "/api/transactions",
            json={"amount": day, "description": "x", "date": f"2025-07-{day}", "type": "expense", "category": "Food"},
        )
    recent = legacy_client.get("/api/summary").json()["recentTransactions"]
    assert [t["date"] for t in recent] == ["2025-07-15", "2025-07-14", "2025-07-13", "2025-07-12", "2025-07-11"]


def test_offline_ledger(legacy_client):
    assert legacy_client.post("/local/budget", json={"amount": "abc"}).status_code == 400
    legacy_client.post("/local/budget", json={"amount": "500"})
    legacy_client.post("/local/expenses", json={"amount": "120", "description": "food"})
    assert legacy_client.post("/local/expenses", json={"amount": "5"}).status_code == 400

    view = legacy_client.get("/local").json()
    assert view["budget"] == 500
    assert view["totalExpenses"] == 120
    assert view["amountLeft"] == 380


def test_rejected_values_never_reach_the_summary(legacy_client):
    base = {"amount": 10, "description": "Lunch", "date": "2025-06-10", "type": "expense"}
    cases = [
        ({"date": "2025-06-10T14:30:00Z"}, "Invalid date"),
        ({"category": 7}, "Invalid category"),
        ({"description": 7}, "Invalid description"),
        ({"amount": "nan"}, "Invalid amount"),
        ({"amount": "inf"}, "Invalid amount"),
    ]
    for override, message in cases:
        response = legacy_client.post("/api/transactions", json={**base, **override})
        assert response.status_code == 400
        assert response.json() == {"error": message}

    assert legacy_client.put("/api/transactions/2", json={"date": "2025-06-05T00:00:00"}).status_code == 400
    assert legacy_client.put("/api/transactions/2", json={"category": ["Rent"]}).status_code == 400

    summary = legacy_client.get("/api/summary")
    assert summary.status_code == 200
    assert summary.json()["totalExpenses"] == 800


def test_rejected_budget_values(legacy_client):
    base = {"name": "Food", "amount": 200, "period": "monthly", "startDate": "2025-06-01"}
    assert legacy_client.post("/api/budgets", json={**base, "amount": "-inf"}).json() == {"error": "Invalid amount"}
    assert legacy_client.post("/api/budgets", json={**base, "category": 3}).status_code == 400
    assert legacy_client.post("/api/budgets", json={**base, "startDate": "2025-06-01 09:00"}).status_code == 400
    assert legacy_client.put("/api/budgets/1", json={"name": 5}).status_code == 400

    assert len(legacy_client.get("/api/budgets").json()) == 1
    assert legacy_client.get("/api/summary").status_code == 200
