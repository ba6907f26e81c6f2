"""Integration tests for the simulation preview endpoints"""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from finance_cycle.infrastructure.database.models import Card

CARD = {
    "name": "Visa",
    "credit_limit": 5000,
    "balance": 1000,
    "interest_rate_apr": 24,
    "minimum_payment": 50,
}


def test_simulate_card_one_cycle(client: TestClient, db: Session):
    response = client.post("/v1/simulate/card", json={"card": CARD, "cycles": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["interest_accrued"] == 20.0
    assert data["due_balance"] == 1020.0
    assert data["payments_applied"] == 50.0
    assert data["balance"] == 970.0
    assert db.query(Card).count() == 0


def test_simulate_card_percent_policy(client: TestClient):
    card = dict(CARD, minimum_payment_policy="percent_plus_interest", minimum_payment_percent=3)

    data = client.post("/v1/simulate/card", json={"card": card, "cycles": 1}).json()

    assert data["minimum_due"] == 50.0
    assert data["balance"] == 970.0


def test_simulate_card_rejects_missing_percent(client: TestClient):
    card = dict(CARD, minimum_payment_policy="percent_plus_interest")

    response = client.post("/v1/simulate/card", json={"card": card, "cycles": 1})

    assert response.status_code == 422
    assert "Minimum payment %" in response.json()["detail"]


def test_simulate_card_zero_cycles(client: TestClient):
    data = client.post("/v1/simulate/card", json={"card": CARD, "cycles": 0}).json()

    assert data["balance"] == 1000.0
    assert data["interest_accrued"] == 0.0


def test_simulate_loan_three_cycles(client: TestClient):
    loan = {"name": "Car loan", "balance": 5000, "interest_rate_apr": 6, "minimum_payment": 200}

    data = client.post("/v1/simulate/loan", json={"loan": loan, "cycles": 3}).json()

    assert data["balance"] == 4472.37
    assert data["interest_accrued"] == 72.37
    assert data["payments_applied"] == 600.0
    assert data["monthly_payment"] == 200.0


def test_simulate_loan_rejects_bad_custom_recurrence(client: TestClient):
    loan = {
        "name": "Car loan",
        "balance": 5000,
        "minimum_payment": 200,
        "recurrence": {"cadence": "custom", "custom_interval": 2},
    }

    response = client.post("/v1/simulate/loan", json={"loan": loan, "cycles": 1})

    assert response.status_code == 422
    assert response.json()["detail"] == "Custom frequency unit is required."


def test_simulate_cycle_count_bounds(client: TestClient):
    assert client.post("/v1/simulate/card", json={"card": CARD, "cycles": -1}).status_code == 422
    assert client.post("/v1/simulate/card", json={"card": CARD, "cycles": 601}).status_code == 422
