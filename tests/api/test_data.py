"""Tests for GET /api/data."""

from uuid import uuid4

from tests.helpers import usd


def _data(response):
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestDataRouting:

    def test_type_required(self, client):
        response = client.get("/api/data")

        assert response.status_code == 400
        assert "'type'" in response.json()["error"]["message"]

    def test_unknown_type(self, client):
        response = client.get("/api/data", params={"type": "contracts"})

        assert response.status_code == 400
        assert "Unknown type" in response.json()["error"]["message"]

    def test_invalid_month(self, client):
        response = client.get("/api/data", params={"type": "statements", "year": 2025, "month": 13})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_response_carries_request_id_header(self, client):
        response = client.get("/api/data/ledger/USD")

        assert response.json()["meta"]["request_id"] == response.headers["X-Request-ID"]

    def test_error_envelope_carries_request_id(self, client):
        response = client.get("/api/data", params={"type": "invoices", "id": str(uuid4())})

        assert response.json()["meta"]["request_id"] == response.headers["X-Request-ID"]


class TestInvoiceData:

    def test_by_id(self, client, scheduled_invoice):
        invoice = _data(client.get("/api/data", params={"type": "invoices", "id": scheduled_invoice["id"]}))

        assert invoice["invoice_number"] == scheduled_invoice["invoice_number"]

    def test_unknown_id(self, client):
        response = client.get("/api/data", params={"type": "invoices", "id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_by_client(self, client, client_id, scheduled_invoice):
        invoices = _data(client.get("/api/data", params={"type": "invoices", "client_id": str(client_id)}))

        assert [i["id"] for i in invoices] == [scheduled_invoice["id"]]

    def test_by_status_is_case_insensitive(self, client, scheduled_invoice):
        tracking = _data(client.get("/api/data", params={"type": "invoices", "status": "tracking"}))
        pending = _data(client.get("/api/data", params={"type": "invoices", "status": "PENDING"}))

        assert len(tracking) == 1
        assert pending == []

    def test_filter_required(self, client):
        response = client.get("/api/data", params={"type": "invoices"})

        assert response.status_code == 400

    def test_account_statement(self, client, act, client_id, pending_invoice):
        act("invoice", "record_payment", {
            "id": pending_invoice["id"], "amount": "200", "paid_at": "2025-10-20T12:00:00Z",
        })
        issued = pending_invoice["issue_date"]

        statement = _data(client.get("/api/data", params={
            "type": "invoices", "client_id": str(client_id), "start": issued, "end": issued,
        }))

        assert statement["total_billed_scaled"] == usd(4200).scaled
        assert statement["total_paid_scaled"] == usd(200).scaled
        assert statement["balance_scaled"] == usd(4000).scaled
        assert len(statement["payments"]) == 1


class TestPaymentData:

    def test_requires_invoice_id(self, client):
        response = client.get("/api/data", params={"type": "payments"})

        assert response.status_code == 400

    def test_lists_invoice_payments(self, client, act, pending_invoice):
        act("invoice", "record_payment", {"id": pending_invoice["id"], "amount": "100"})
        act("invoice", "record_payment", {"id": pending_invoice["id"], "amount": "150"})

        payments = _data(client.get("/api/data", params={"type": "payments", "id": pending_invoice["id"]}))

        assert sorted(p["amount_scaled"] for p in payments) == [usd(100).scaled, usd(150).scaled]


class TestStatementAndPeriodData:

    def test_statements_require_period(self, client):
        response = client.get("/api/data", params={"type": "statements", "year": 2025})

        assert response.status_code == 400

    def test_statement_for_client(self, client, act, client_id, october_sales):
        act("statement", "compute", {"client_id": str(client_id), "year": 2025, "month": 10})

        statement = _data(client.get("/api/data", params={
            "type": "statements", "client_id": str(client_id), "year": 2025, "month": 10,
        }))

        assert statement["agency_net_scaled"] == usd(4116).scaled

    def test_missing_statement(self, client, client_id):
        response = client.get("/api/data", params={
            "type": "statements", "client_id": str(client_id), "year": 2025, "month": 10,
        })

        assert response.status_code == 404

    def test_statements_for_period(self, client, act, october_sales):
        act("statement", "compute_all", {"year": 2025, "month": 10})

        statements = _data(client.get("/api/data", params={"type": "statements", "year": 2025, "month": 10}))

        assert len(statements) == 1

    def test_periods(self, client, act, client_id, october_sales):
        act("statement", "compute", {"client_id": str(client_id), "year": 2025, "month": 10})
        act("period", "close", {"year": 2025, "month": 10})

        periods = _data(client.get("/api/data", params={"type": "periods"}))
        october = _data(client.get("/api/data", params={"type": "periods", "year": 2025, "month": 10}))

        assert [p["period_id"] for p in periods] == ["2025-10"]
        assert october["state"] == "CLOSED"

    def test_unknown_period(self, client):
        response = client.get("/api/data", params={"type": "periods", "year": 2025, "month": 1})

        assert response.status_code == 404


class TestLedgerAndPortfolioData:

    def test_ledger_state(self, client, act):
        act("ledger", "credit", {"amount": "250"})

        state = _data(client.get("/api/data/ledger/USD"))

        assert state["currency"] == "USD"
        assert state["in_movement_scaled"] == usd(250).scaled
        assert state["transaction_count"] == 1

    def test_ledger_state_unknown_currency(self, client):
        response = client.get("/api/data/ledger/EUR")

        assert response.status_code == 422

    def test_ledger_transactions(self, client, act):
        act("ledger", "credit", {"amount": "250"})
        act("ledger", "credit", {"amount": "10", "currency": "COP"})

        transactions = _data(client.get("/api/data", params={"type": "ledger", "currency": "USD"}))

        assert [t["amount_scaled"] for t in transactions] == [usd(250).scaled]

    def test_portfolio(self, client, act, pending_invoice):
        act("invoice", "record_payment", {"id": pending_invoice["id"], "amount": "1050"})

        summary = _data(client.get("/api/data/portfolio"))

        assert summary["billed_scaled"] == usd(4200).scaled
        assert summary["paid_scaled"] == usd(1050).scaled
        assert summary["outstanding_scaled"] == usd(3150).scaled
        assert summary["counts_by_status"] == {"PARTIAL": 1}

    def test_portfolio_via_type(self, client, scheduled_invoice):
        summary = _data(client.get("/api/data", params={"type": "portfolio"}))

        assert summary["billed_scaled"] == 0
        assert summary["counts_by_status"] == {"TRACKING": 1}
