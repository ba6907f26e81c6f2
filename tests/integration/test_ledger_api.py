"""Integration tests for the ledger endpoints"""

import uuid
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from finance_cycle.infrastructure.database.models import LedgerEntry, LedgerLine


def grocery_entry(amount_debit=42.5, amount_credit=42.5, **overrides):
    body = {
        "entry_type": "purchase",
        "description": "Groceries",
        "occurred_at": "2024-03-10T18:00:00Z",
        "reference_type": "purchase",
        "reference_id": "purchase-1",
        "cycle_key": "2024-03",
        "lines": [
            {"line_type": "debit", "account_code": "EXPENSE:GROCERIES", "amount": amount_debit},
            {"line_type": "credit", "account_code": "LIABILITY:CARD:VISA", "amount": amount_credit},
        ],
    }
    body.update(overrides)
    return body


def test_append_balanced_entry(client: TestClient):
    response = client.post("/v1/ledger/entries", json=grocery_entry())

    assert response.status_code == 201
    data = response.json()
    assert data["entry_type"] == "purchase"
    assert [l["line_type"] for l in data["lines"]] == ["debit", "credit"]
    assert all(l["amount"] == 42.5 for l in data["lines"])

    listed = client.get("/v1/ledger/entries").json()["entries"]
    assert [e["id"] for e in listed] == [data["id"]]


def test_imbalanced_entry_rejected_atomically(client: TestClient, db: Session):
    response = client.post("/v1/ledger/entries", json=grocery_entry(amount_credit=42.0))

    assert response.status_code == 422
    assert "imbalanced" in response.json()["detail"]
    assert db.query(LedgerEntry).count() == 0
    assert db.query(LedgerLine).count() == 0


def test_non_positive_line_rejected(client: TestClient):
    response = client.post("/v1/ledger/entries", json=grocery_entry(amount_debit=0, amount_credit=0))

    assert response.status_code == 422
    assert response.json()["detail"] == "Ledger line amount must be greater than 0."


def test_single_line_rejected(client: TestClient):
    body = grocery_entry()
    body["lines"] = body["lines"][:1]

    assert client.post("/v1/ledger/entries", json=body).status_code == 422


def test_occurred_at_defaults_to_clock(client: TestClient, clock):
    body = grocery_entry()
    del body["occurred_at"]

    data = client.post("/v1/ledger/entries", json=body).json()

    assert data["occurred_at"].startswith("2024-03-15T12:00:00")


def test_reverse_entry(client: TestClient):
    original = client.post("/v1/ledger/entries", json=grocery_entry()).json()

    response = client.post(f"/v1/ledger/entries/{original['id']}/reverse")

    assert response.status_code == 201
    reversal = response.json()
    assert reversal["entry_type"] == "purchase_reversal"
    assert reversal["reference_type"] == "ledger_entry"
    assert reversal["reference_id"] == original["id"]
    assert reversal["cycle_key"] == "2024-03"
    assert [(l["line_type"], l["account_code"]) for l in reversal["lines"]] == [
        ("credit", "EXPENSE:GROCERIES"),
        ("debit", "LIABILITY:CARD:VISA"),
    ]

    again = client.post(f"/v1/ledger/entries/{original['id']}/reverse")
    assert again.status_code == 422
    assert "already reversed" in again.json()["detail"]


def test_reverse_unknown_or_foreign_entry(client: TestClient):
    assert client.post(f"/v1/ledger/entries/{uuid.uuid4()}/reverse").status_code == 404

    original = client.post("/v1/ledger/entries", json=grocery_entry()).json()
    response = client.post(
        f"/v1/ledger/entries/{original['id']}/reverse",
        headers={"X-User-ID": "someone_else"},
    )
    assert response.status_code == 404


def test_list_entries_filters_by_cycle_and_user(client: TestClient):
    client.post("/v1/ledger/entries", json=grocery_entry())
    client.post("/v1/ledger/entries", json=grocery_entry(cycle_key="2024-02", occurred_at="2024-02-10T18:00:00Z"))

    march = client.get("/v1/ledger/entries", params={"cycle_key": "2024-03"}).json()["entries"]
    everything = client.get("/v1/ledger/entries").json()["entries"]
    foreign = client.get("/v1/ledger/entries", headers={"X-User-ID": "someone_else"}).json()["entries"]

    assert len(march) == 1
    assert [e["cycle_key"] for e in everything] == ["2024-03", "2024-02"]
    assert foreign == []
