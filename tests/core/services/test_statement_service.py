"""Tests for StatementService."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from core.exceptions import PeriodClosedError
from core.models import CommissionType, Contract, Currency, LedgerReason
from tests.helpers import at, make_sale, usd


@pytest.fixture
def service(engine):
    return engine.statements


@pytest.fixture
def march_sales(sales, client_id, flat_contract):
    """$2,000 over two active days in March 2025."""
    sales.add(make_sale(client_id, "1000", at(2025, 3, 5)))
    sales.add(make_sale(client_id, "500", at(2025, 3, 5, 18), sale_type="TIP"))
    sales.add(make_sale(client_id, "500", at(2025, 3, 20)))


class TestComputeStatement:

    def test_split(self, service, client_id, march_sales, as_operator):
        statement = service.compute_statement(client_id, 2025, 3)

        assert statement.period_id == "2025-03"
        assert statement.gross_sales == usd(2000)
        assert statement.agency_percentage == Decimal("20")
        assert statement.agency_commission == usd(400)
        assert statement.processor_percentage == Decimal("2")
        assert statement.processor_commission == usd(8)
        assert statement.client_payout == usd(1600)
        assert statement.agency_net == usd(392)
        assert statement.sales_count == 3
        assert statement.recompute_count == 0

    def test_processor_fee_does_not_touch_client_payout(self, service, client_id, march_sales, as_operator):
        statement = service.compute_statement(client_id, 2025, 3, processor_percentage=Decimal("10"))
        assert statement.client_payout == statement.gross_sales - statement.agency_commission
        assert statement.agency_net == statement.agency_commission - statement.processor_commission

    def test_breakdown(self, service, client_id, march_sales, as_operator):
        statement = service.compute_statement(client_id, 2025, 3)

        assert statement.sales_by_type == {
            "SUBSCRIPTION": usd(1500).scaled,
            "TIP": usd(500).scaled,
        }
        assert statement.active_days == 2
        assert statement.daily_average_scaled == usd(1000).scaled

    def test_credits_agency_net_to_ledger(self, engine, service, client_id, march_sales, as_operator):
        statement = service.compute_statement(client_id, 2025, 3)

        [tx] = engine.ledger.list_transactions(Currency.USD, reference=str(statement.id))
        assert tx.reason == LedgerReason.STATEMENT_REVENUE
        assert tx.amount == usd(392)
        assert tx.period_id == "2025-03"

    def test_recompute_reverses_previous_revenue(self, engine, service, sales, client_id, march_sales, as_operator):
        first = service.compute_statement(client_id, 2025, 3)
        sales.add(make_sale(client_id, "1000", at(2025, 3, 25)))

        second = service.compute_statement(client_id, 2025, 3)

        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.recompute_count == 1
        assert second.agency_net == usd(588)
        reasons = [tx.reason for tx in engine.ledger.list_transactions(Currency.USD, reference=str(first.id))]
        assert reasons == [
            LedgerReason.STATEMENT_REVENUE,
            LedgerReason.STATEMENT_RECALCULATION,
            LedgerReason.STATEMENT_REVENUE,
        ]
        assert engine.ledger.get_state(Currency.USD).in_movement == usd(588)

    def test_no_sales_gives_zero_statement_without_ledger_entry(self, engine, service, client_id, flat_contract, as_operator):
        statement = service.compute_statement(client_id, 2025, 3)

        assert statement.gross_sales.is_zero()
        assert statement.active_days == 0
        assert engine.ledger.list_transactions(Currency.USD) == []

    def test_tiered_contract(self, service, sales, client_id, tiered_contract, as_operator):
        sales.add(make_sale(client_id, "21000", at(2025, 3, 10)))
        statement = service.compute_statement(client_id, 2025, 3)
        assert statement.agency_percentage == Decimal("20")
        assert statement.agency_commission == usd(4200)

    def test_without_contract_rejected(self, service, as_operator):
        with pytest.raises(ValueError, match="no contract"):
            service.compute_statement(uuid4(), 2025, 3)

    def test_closed_period_rejected(self, engine, service, client_id, march_sales, as_operator):
        service.compute_statement(client_id, 2025, 3)
        engine.consolidation.close_period(2025, 3)

        with pytest.raises(PeriodClosedError):
            service.compute_statement(client_id, 2025, 3)

    def test_opens_the_period(self, engine, service, client_id, march_sales, as_operator):
        service.compute_statement(client_id, 2025, 3)
        period = engine.consolidation.get_period(2025, 3)
        assert period is not None
        assert not period.is_closed

    def test_audited_create_then_update(self, engine, service, client_id, march_sales, as_operator):
        statement = service.compute_statement(client_id, 2025, 3)
        service.compute_statement(client_id, 2025, 3, processor_percentage=Decimal("3"))

        history = engine.audit.get_entity_history("statement", statement.id)
        assert [h["action"] for h in history] == ["update", "create"]
        assert "processor_percentage" in history[0]["changes"]


class TestComputeAll:

    def test_every_client_with_sales(self, service, contracts, sales, client_id, march_sales, as_operator):
        other = uuid4()
        contracts.add_contract(Contract(
            client_id=other,
            commission_type=CommissionType.FLAT,
            flat_percentage=Decimal("10"),
            start_date=date(2025, 1, 1),
        ))
        sales.add(make_sale(other, "100", at(2025, 3, 8)))
        orphan = uuid4()
        sales.add(make_sale(orphan, "100", at(2025, 3, 9)))

        result = service.compute_all(2025, 3)

        assert {s.client_id for s in result.computed} == {client_id, other}
        assert list(result.failed) == [str(orphan)]
        assert len(service.list_for_period(2025, 3)) == 2

    def test_explicit_client_list(self, service, client_id, march_sales, as_operator):
        result = service.compute_all(2025, 3, client_ids=[client_id])
        assert len(result.computed) == 1
        assert service.get_statement(client_id, 2025, 3) is not None
