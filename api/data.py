"""GET /api/data: unified read endpoint."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import ok
from core.models import Currency, InvoiceStatus


VALID_TYPES = {"invoices", "payments", "statements", "periods", "ledger", "portfolio"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    statement_svc = services["statement"]
    period_svc = services["period"]
    ledger_svc = services["ledger"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/ledger/{currency}")
    async def ledger_state(request: Request, currency: Currency):
        return ok(request, ledger_svc.get_state(currency))

    @router.get("/data/portfolio")
    async def portfolio(request: Request, currency: Currency | None = Query(None)):
        return ok(request, invoice_svc.portfolio_summary(currency))

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        client_id: str | None = Query(None),
        status: str | None = Query(None),
        year: int | None = Query(None),
        month: int | None = Query(None, ge=1, le=12),
        start: date | None = Query(None),
        end: date | None = Query(None),
        currency: Currency = Query(Currency.USD),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "invoices":
            return ok(request, _invoices(invoice_svc, id, client_id, status, start, end, currency))

        if type == "payments":
            if id is None:
                raise ValueError("'payments' type requires 'id' (invoice id) parameter")
            return ok(request, invoice_svc.list_payments(UUID(id)))

        if type == "statements":
            return ok(request, _statements(statement_svc, client_id, year, month))

        if type == "periods":
            return ok(request, _periods(period_svc, year, month))

        if type == "ledger":
            return ok(request, ledger_svc.list_transactions(currency))

        return ok(request, invoice_svc.portfolio_summary(currency))

    return router


def _invoices(invoice_svc, id, client_id, status, start, end, currency):
    if id:
        invoice = invoice_svc.get_by_id(UUID(id))
        if invoice is None:
            raise ValueError(f"Invoice {id} not found")
        return invoice

    if client_id and start and end:
        return invoice_svc.account_statement(UUID(client_id), start, end, currency)

    if client_id:
        return invoice_svc.list_for_client(UUID(client_id))
    if status:
        return invoice_svc.list_by_status(InvoiceStatus(status.upper()))

    raise ValueError("'invoices' type requires 'id', 'client_id' or 'status' parameter")


def _statements(statement_svc, client_id, year, month):
    if year is None or month is None:
        raise ValueError("'statements' type requires 'year' and 'month' parameters")

    if client_id:
        statement = statement_svc.get_statement(UUID(client_id), year, month)
        if statement is None:
            raise ValueError(f"Statement for client {client_id} in {year}-{month:02d} not found")
        return statement

    return statement_svc.list_for_period(year, month)


def _periods(period_svc, year, month):
    if year is not None and month is not None:
        period = period_svc.get_period(year, month)
        if period is None:
            raise ValueError(f"Period {year}-{month:02d} not found")
        return period

    return period_svc.list_periods()
