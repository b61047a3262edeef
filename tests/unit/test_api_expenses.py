"""HTTP tests for the expense and analytics endpoints."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from expense_tracker import crud, models
from expense_tracker.server import app


def _create(client, headers, **overrides) -> dict:
    payload = {"amount": 100, "category": "Groceries", "paymentMode": "UPI"}
    payload.update(overrides)
    response = client.post("/expenses", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_expense_routes_require_token(client) -> None:
    for method, path in [
        ("get", "/expenses"),
        ("post", "/expenses"),
        ("get", "/expenses/analytics"),
        ("get", "/expenses/1"),
        ("put", "/expenses/1"),
        ("delete", "/expenses/1"),
    ]:
        response = client.request(method.upper(), path)
        assert response.status_code == 401, path


def test_create_expense_returns_camel_case_record(client, signup) -> None:
    _, headers = signup()
    body = _create(client, headers, notes="weekly shop", date="2024-01-05T10:00:00Z")

    assert body["amount"] == "100.00"
    assert body["category"] == "Groceries"
    assert body["paymentMode"] == "UPI"
    assert body["notes"] == "weekly shop"
    assert body["date"].startswith("2024-01-05T10:00:00")
    assert {"id", "createdAt", "updatedAt"} <= body.keys()


def test_create_expense_defaults(client, signup) -> None:
    _, headers = signup()
    body = _create(client, headers)
    assert body["notes"] == ""
    assert body["date"]


@pytest.mark.parametrize(
    ("payload", "field"),
    [
        ({"amount": -5, "category": "Groceries", "paymentMode": "UPI"}, "amount"),
        ({"amount": 5, "category": "Shopping", "paymentMode": "UPI"}, "category"),
        ({"amount": 5, "category": "Groceries", "paymentMode": "Barter"}, "paymentMode"),
        ({"category": "Groceries", "paymentMode": "UPI"}, "amount"),
    ],
)
def test_create_expense_validation(client, signup, payload, field) -> None:
    _, headers = signup()
    response = client.post("/expenses", headers=headers, json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert field in {detail["field"] for detail in body["details"]}


def test_expense_is_invisible_to_other_users(client, signup) -> None:
    _, alice = signup()
    _, bob = signup(email="bob@mailbox.org", name="Bob")
    expense = _create(client, alice)
    path = f"/expenses/{expense['id']}"

    for response in (
        client.get(path, headers=bob),
        client.put(path, headers=bob, json={"notes": "mine now"}),
        client.delete(path, headers=bob),
    ):
        assert response.status_code == 404
        assert response.json() == {"error": "Expense not found"}

    assert client.get(path, headers=alice).json()["notes"] == ""
    assert client.get("/expenses", headers=bob).json()["items"] == []


def test_update_expense_partial(client, signup) -> None:
    _, headers = signup()
    expense = _create(client, headers, notes="bus")

    response = client.put(
        f"/expenses/{expense['id']}",
        headers=headers,
        json={"amount": 12.5, "category": "Travel", "id": 999},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == expense["id"]
    assert body["amount"] == "12.50"
    assert body["category"] == "Travel"
    assert body["notes"] == "bus"
    assert body["paymentMode"] == "UPI"


def test_update_expense_rejects_null_and_bad_values(client, signup) -> None:
    _, headers = signup()
    expense = _create(client, headers)
    path = f"/expenses/{expense['id']}"

    assert client.put(path, headers=headers, json={"amount": None}).status_code == 400
    assert client.put(path, headers=headers, json={"category": "Nope"}).status_code == 400


def test_delete_expense(client, signup) -> None:
    _, headers = signup()
    expense = _create(client, headers)
    path = f"/expenses/{expense['id']}"

    deleted = client.delete(path, headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Expense deleted successfully"}
    assert client.get(path, headers=headers).status_code == 404
    assert client.delete(path, headers=headers).status_code == 404


def test_malformed_expense_id_is_a_validation_error(client, signup) -> None:
    _, headers = signup()
    response = client.get("/expenses/not-a-number", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_list_expenses_filters_and_paginates(client, signup) -> None:
    _, headers = signup()
    now = models.utcnow()
    recent = (now - timedelta(days=2)).isoformat()
    older = (now - timedelta(days=60)).isoformat()
    ancient = (now - timedelta(days=400)).isoformat()
    _create(client, headers, amount=10, category="Groceries", paymentMode="UPI", date=recent)
    _create(client, headers, amount=20, category="Travel", paymentMode="Cash", date=recent)
    _create(client, headers, amount=30, category="Groceries", paymentMode="Credit Card", date=older)
    _create(client, headers, amount=40, category="Rental", paymentMode="Net Banking", date=ancient)

    everything = client.get("/expenses", headers=headers).json()
    assert everything["pagination"] == {
        "currentPage": 1,
        "totalPages": 1,
        "count": 4,
        "totalRecords": 4,
    }
    assert [item["amount"] for item in everything["items"]][-1] == "40.00"

    last_30 = client.get("/expenses", headers=headers, params={"dateFilter": "last30Days"}).json()
    assert {item["amount"] for item in last_30["items"]} == {"10.00", "20.00"}

    groceries = client.get(
        "/expenses",
        headers=headers,
        params={"categories": ["Groceries", "Rental"], "paymentModes": ["Credit Card", "Net Banking"]},
    ).json()
    assert {item["amount"] for item in groceries["items"]} == {"30.00", "40.00"}

    paged = client.get("/expenses", headers=headers, params={"page": 2, "limit": 3}).json()
    assert paged["pagination"] == {
        "currentPage": 2,
        "totalPages": 2,
        "count": 1,
        "totalRecords": 4,
    }


@pytest.mark.parametrize(
    "params",
    [
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"dateFilter": "lastYear"},
        {"categories": "Gadgets"},
        {"paymentModes": "Cheque"},
    ],
)
def test_list_expenses_rejects_bad_query(client, signup, params) -> None:
    _, headers = signup()
    response = client.get("/expenses", headers=headers, params=params)
    assert response.status_code == 400


def test_analytics_endpoint(client, signup) -> None:
    _, headers = signup()
    _create(client, headers, amount=100, category="Groceries", paymentMode="UPI", date="2024-01-05T00:00:00")
    _create(client, headers, amount=50, category="Travel", paymentMode="Cash", date="2024-01-10T00:00:00")
    _create(client, headers, amount=200, category="Groceries", paymentMode="UPI", date="2024-02-01T00:00:00")

    response = client.get("/expenses/analytics", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {
        "totalExpenses": "350.00",
        "totalTransactions": 3,
        "avgExpense": "116.67",
    }
    assert body["categoryBreakdown"] == [
        {"category": "Groceries", "totalAmount": "300.00", "count": 2},
        {"category": "Travel", "totalAmount": "50.00", "count": 1},
    ]
    assert [(bucket["year"], bucket["month"]) for bucket in body["monthlyData"]] == [(2024, 1), (2024, 2)]
    assert body["monthlyData"][0]["totalAmount"] == "150.00"


def test_analytics_for_new_user(client, signup) -> None:
    _, headers = signup()
    body = client.get("/expenses/analytics", headers=headers).json()
    assert body["monthlyData"] == []
    assert body["categoryBreakdown"] == []
    assert body["summary"]["totalTransactions"] == 0


def test_unexpected_errors_become_500(client, signup, monkeypatch: pytest.MonkeyPatch) -> None:
    _, headers = signup()

    def explode(*_args, **_kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(crud, "expense_analytics", explode)
    with TestClient(app, raise_server_exceptions=False) as unsafe_client:
        response = unsafe_client.get("/expenses/analytics", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}


HUGE_NUMBER = 10**20


def test_page_beyond_the_end_is_empty_even_when_huge(client, signup) -> None:
    _, headers = signup()
    _create(client, headers)

    for page in (2, HUGE_NUMBER):
        response = client.get("/expenses", headers=headers, params={"page": page, "limit": 20})
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["items"] == []
        assert body["pagination"] == {
            "currentPage": page,
            "totalPages": 1,
            "count": 0,
            "totalRecords": 1,
        }


@pytest.mark.parametrize("expense_id", [HUGE_NUMBER, -HUGE_NUMBER])
def test_out_of_range_expense_id_is_not_found(client, signup, expense_id: int) -> None:
    _, headers = signup()
    path = f"/expenses/{expense_id}"

    for response in (
        client.get(path, headers=headers),
        client.put(path, headers=headers, json={"notes": "late"}),
        client.delete(path, headers=headers),
    ):
        assert response.status_code == 404
        assert response.json() == {"error": "Expense not found"}


def test_unexpected_errors_are_logged_as_requests(
    client, signup, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    _, headers = signup()

    def explode(*_args, **_kwargs):
        raise RuntimeError("database on fire")

    monkeypatch.setattr(crud, "expense_analytics", explode)
    with caplog.at_level(logging.INFO, logger="expense_tracker.server"):
        with TestClient(app, raise_server_exceptions=False) as unsafe_client:
            response = unsafe_client.get("/expenses/analytics", headers=headers)

    assert response.status_code == 500
    request_lines = [record for record in caplog.records if getattr(record, "status_code", None) == 500]
    assert len(request_lines) == 1
    assert request_lines[0].getMessage() == "GET /expenses/analytics -> 500"
    assert request_lines[0].path == "/expenses/analytics"
