"""POST /api/actions: unified mutation endpoint."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import ok
from core.models import (
    Currency,
    LedgerReason,
    ManualInvoiceCreate,
    Money,
    PaymentCreate,
)
from utils.timezone import parse_iso


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"], services["contracts"]),
        "statement": StatementHandler(services["statement"]),
        "period": PeriodHandler(services["period"]),
        "ledger": LedgerHandler(services["ledger"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}", None)
        return ok(request, method(body.data))

    return router


def _optional_moment(data: dict):
    """Parse an optional ISO 'now' for batch jobs."""
    raw = data.get("now")
    return parse_iso(raw) if raw else None


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class InvoiceHandler:
    ALLOWED_ACTIONS = {
        "create_scheduled", "create_manual", "record_payment", "cancel",
        "activate_due", "mark_overdue",
    }

    def __init__(self, service, contracts):
        self.service = service
        self.contracts = contracts

    def _handle_create_scheduled(self, data: dict):
        client_id = UUID(data["client_id"])
        contract = self.contracts.get_current_contract(client_id)
        if contract is None:
            raise ValueError(f"Contract for client {client_id} not found")
        reference_date = date.fromisoformat(data["reference_date"]) if data.get("reference_date") else None
        invoice = self.service.create_scheduled(contract, reference_date)
        return invoice

    def _handle_create_manual(self, data: dict):
        invoice = self.service.create_manual(ManualInvoiceCreate(**data))
        return invoice

    def _handle_record_payment(self, data: dict):
        payload = {k: v for k, v in data.items() if k != "id"}
        invoice, payment = self.service.record_payment(UUID(data["id"]), PaymentCreate(**payload))
        return {
            "invoice": invoice,
            "payment": payment,
        }

    def _handle_cancel(self, data: dict):
        invoice = self.service.cancel(UUID(data["id"]), data.get("reason"))
        return invoice

    def _handle_activate_due(self, data: dict):
        return self.service.activate_due(_optional_moment(data))

    def _handle_mark_overdue(self, data: dict):
        return self.service.mark_overdue_if_past_due(_optional_moment(data))


class StatementHandler:
    ALLOWED_ACTIONS = {"compute", "compute_all"}

    def __init__(self, service):
        self.service = service

    def _handle_compute(self, data: dict):
        processor = data.get("processor_percentage")
        statement = self.service.compute_statement(
            UUID(data["client_id"]),
            int(data["year"]),
            int(data["month"]),
            Decimal(str(processor)) if processor is not None else None,
        )
        return statement

    def _handle_compute_all(self, data: dict):
        return self.service.compute_all(int(data["year"]), int(data["month"]))


class PeriodHandler:
    ALLOWED_ACTIONS = {"close"}

    def __init__(self, service):
        self.service = service

    def _handle_close(self, data: dict):
        period = self.service.close_period(int(data["year"]), int(data["month"]))
        return period


class LedgerHandler:
    ALLOWED_ACTIONS = {"credit", "debit"}

    def __init__(self, service):
        self.service = service

    def _movement_args(self, data: dict) -> dict:
        return {
            "amount": Money.from_display(str(data["amount"]), Currency(data.get("currency", "USD"))),
            "reason": LedgerReason(data.get("reason", LedgerReason.MANUAL_ADJUSTMENT.value)),
            "reference": data.get("reference"),
            "description": data.get("description"),
        }

    def _handle_credit(self, data: dict):
        return self.service.credit(**self._movement_args(data))

    def _handle_debit(self, data: dict):
        return self.service.debit(**self._movement_args(data))
