"""API test fixtures: the app over an in-memory engine, called as the test operator."""

from datetime import date

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from api.middleware import ACTOR_HEADER
from tests.helpers import at, make_sale


@pytest.fixture
def app(engine):
    return create_app(engine)


@pytest.fixture
def client(app, operator_id):
    """TestClient that identifies as the test operator."""
    return TestClient(app, raise_server_exceptions=False, headers={ACTOR_HEADER: str(operator_id)})


@pytest.fixture
def anonymous_client(app):
    """TestClient without an operator header."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def act(client):
    """POST an action and return the response."""

    def _act(domain: str, action: str, data: dict | None = None):
        return client.post("/api/actions", json={"domain": domain, "action": action, "data": data or {}})

    return _act


@pytest.fixture
def october_sales(sales, client_id, tiered_contract):
    """$21,000 in the first half of October 2025 for the tiered client."""
    sales.add(make_sale(client_id, "12000", at(2025, 10, 3)))
    sales.add(make_sale(client_id, "9000", at(2025, 10, 14)))


@pytest.fixture
def scheduled_invoice(act, client_id, october_sales) -> dict:
    response = act("invoice", "create_scheduled", {
        "client_id": str(client_id),
        "reference_date": date(2025, 10, 10).isoformat(),
    })
    assert response.status_code == 200
    return response.json()["data"]


@pytest.fixture
def pending_invoice(act, scheduled_invoice) -> dict:
    response = act("invoice", "activate_due", {"now": "2025-10-16T00:00:00Z"})
    assert response.json()["data"]["activated"] == 1
    return scheduled_invoice
