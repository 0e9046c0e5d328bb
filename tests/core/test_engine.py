"""End-to-end tests through the BillingEngine facade."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, Mock
from uuid import uuid4

import pytest

import clients.vault_client as vault_module
import core.engine as engine_module
from core.config import BillingConfig
from core.engine import BillingEngine
from core.models import (
    Currency,
    InvoiceStatus,
    LineItemCreate,
    ManualInvoiceCreate,
    PaymentCreate,
    PeriodState,
)
from tests.helpers import at, make_sale, usd
from utils.actor_context import SYSTEM_ACTOR_ID


@pytest.fixture
def notifier(engine):
    notifier = Mock()
    engine.subscribe_notifier(notifier)
    return notifier


@pytest.fixture
def october_sales(sales, client_id, tiered_contract):
    sales.add(make_sale(client_id, "12000", at(2025, 10, 3)))
    sales.add(make_sale(client_id, "9000", at(2025, 10, 14)))


def _kinds(notifier) -> list[str]:
    return [c.args[0] for c in notifier.notify.call_args_list]


class TestBillingCycle:

    def test_month_from_tracking_to_consolidation(self, engine, client_id, october_sales, notifier, as_operator):
        invoice = engine.create_scheduled_invoice(client_id, date(2025, 10, 10))
        assert invoice.status == InvoiceStatus.TRACKING

        engine.scheduler.run_activation(at(2025, 10, 16, 0))
        invoice, payment = engine.record_payment(
            invoice.id, PaymentCreate(amount=Decimal("4200"), paid_at=at(2025, 10, 25))
        )
        assert invoice.status == InvoiceStatus.PAID
        assert payment.receipt_number == "REC-2025-0001"

        statement = engine.compute_statement(client_id, 2025, 10)
        assert engine.get_ledger_state(Currency.USD).in_movement == statement.agency_net

        period = engine.close_period(2025, 10)
        assert period.state == PeriodState.CLOSED
        state = engine.get_ledger_state(Currency.USD)
        assert state.in_movement.is_zero()
        assert state.consolidated == usd(4116)

        assert _kinds(notifier) == ["invoice_activated", "invoice_paid", "period_closed"]

    def test_activation_attributed_to_system(self, engine, client_id, october_sales, as_operator):
        invoice = engine.create_scheduled_invoice(client_id, date(2025, 10, 10))
        engine.scheduler.run_activation(at(2025, 10, 16, 0))

        [entry] = [
            e for e in engine.audit.get_entity_history("invoice", invoice.id)
            if e["action"] == "status_change"
        ]
        assert entry["actor_id"] == SYSTEM_ACTOR_ID


class TestFacadeOperations:

    def test_scheduled_invoice_without_contract(self, engine, as_operator):
        with pytest.raises(ValueError, match="no contract"):
            engine.create_scheduled_invoice(uuid4())

    def test_batch_skips_clients_without_contract(self, engine, client_id, october_sales, as_operator):
        result = engine.create_scheduled_invoices([client_id, uuid4()], date(2025, 10, 10))

        assert [i.client_id for i in result.created] == [client_id]
        assert result.failed == {}

    def test_manual_invoice(self, engine, client_id, as_operator):
        invoice = engine.create_manual_invoice(ManualInvoiceCreate(
            client_id=client_id,
            items=[LineItemCreate(concept="Consulting", unit_price=Decimal("99.99"))],
            issue_date=date(2025, 10, 1),
        ))

        assert invoice.status == InvoiceStatus.PENDING
        assert invoice.total == usd("99.99")

    def test_services_keyed_by_domain(self, engine):
        services = engine.services()

        assert services["invoice"] is engine.invoices
        assert services["period"] is engine.consolidation
        assert set(services) == {"invoice", "statement", "period", "ledger", "contracts"}

    def test_notifier_failure_does_not_break_payment(self, engine, client_id, october_sales, as_operator):
        broken = Mock()
        broken.notify.side_effect = RuntimeError("smtp down")
        engine.subscribe_notifier(broken)
        invoice = engine.create_scheduled_invoice(client_id, date(2025, 10, 10))
        engine.scheduler.run_activation(at(2025, 10, 16, 0))

        invoice, _ = engine.record_payment(invoice.id, PaymentCreate(amount=Decimal("4200")))

        assert invoice.status == InvoiceStatus.PAID
        assert broken.notify.call_count == 2


class TestFromVault:

    def test_settings_and_database_url_come_from_vault(self, monkeypatch, sales, contracts):
        postgres = MagicMock()
        monkeypatch.setattr(vault_module, "get_database_url", lambda: "postgresql://billing@db/billing")
        monkeypatch.setattr(vault_module, "get_billing_settings", lambda: {"grace_period_days": "30"})
        monkeypatch.setattr(engine_module, "PostgresClient", postgres)

        engine = BillingEngine.from_vault(sales, contracts)

        postgres.assert_called_once_with("postgresql://billing@db/billing")
        assert engine.config.grace_period_days == 30
        assert engine.invoices.config is engine.config

    def test_explicit_config_wins(self, monkeypatch, sales, contracts):
        monkeypatch.setattr(vault_module, "get_database_url", lambda: "postgresql://billing@db/billing")
        monkeypatch.setattr(vault_module, "get_billing_settings", lambda: {"grace_period_days": "30"})
        monkeypatch.setattr(engine_module, "PostgresClient", MagicMock())

        engine = BillingEngine.from_vault(sales, contracts, config=BillingConfig(grace_period_days=10))

        assert engine.config.grace_period_days == 10
