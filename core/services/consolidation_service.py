"""
Closing calendar months.

Closing a month freezes its statements, moves the ledger's in-movement
balance into the consolidated pool for every currency the statements use,
and records the month's totals. A closed month is final: closing it again
returns the stored period with identical totals via PeriodAlreadyClosedError.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID

from core.audit import AuditAction, AuditLogger
from core.collaborators import SalesSource
from core.config import BillingConfig
from core.event_bus import EventBus
from core.events import PeriodClosed
from core.exceptions import AlreadyConsolidatedError, PeriodAlreadyClosedError, PeriodIncompleteError
from core.models import (
    ConsolidatedPeriod,
    Money,
    MonthlyStatement,
    PeriodState,
    PeriodTotals,
    TopClient,
    period_id_for,
)
from core.services.ledger_service import LedgerService
from core.services.period_calculator import month_range
from core.stores.base import PeriodStore, StatementStore
from utils.actor_context import get_current_actor_id
from utils.timezone import end_of_day, now_utc, start_of_day

logger = logging.getLogger(__name__)

TOP_CLIENTS_LIMIT = 10


class ConsolidationService:
    """Service for closing accounting periods."""

    def __init__(
        self,
        periods: PeriodStore,
        statements: StatementStore,
        sales: SalesSource,
        ledger: LedgerService,
        audit: AuditLogger,
        event_bus: EventBus,
        config: BillingConfig | None = None
    ):
        self.periods = periods
        self.statements = statements
        self.sales = sales
        self.ledger = ledger
        self.audit = audit
        self.event_bus = event_bus
        self.config = config or BillingConfig()

    def _aggregate(self, statements: list[MonthlyStatement]) -> PeriodTotals:
        """Totals over the statements kept in the default currency."""
        currency = self.config.default_currency
        included = [s for s in statements if s.currency == currency]
        totals = PeriodTotals()
        if not included:
            return totals

        for statement in included:
            totals.gross_sales_scaled += statement.gross_sales_scaled
            totals.agency_commission_scaled += statement.agency_commission_scaled
            totals.processor_commission_scaled += statement.processor_commission_scaled
            totals.client_payouts_scaled += statement.client_payout_scaled
            totals.agency_net_scaled += statement.agency_net_scaled
            totals.sales_count += statement.sales_count

        totals.client_count = len(included)
        totals.average_sales_per_client_scaled = (
            Money(totals.gross_sales_scaled, currency).divide(totals.client_count).scaled
        )
        average_pct = sum((s.processor_percentage for s in included), Decimal("0")) / totals.client_count
        totals.average_processor_percentage = average_pct.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)

        ranked = sorted(included, key=lambda s: (-s.agency_net_scaled, str(s.client_id)))
        totals.top_clients = [
            TopClient(
                client_id=s.client_id,
                agency_net_scaled=s.agency_net_scaled,
                gross_sales_scaled=s.gross_sales_scaled,
            )
            for s in ranked[:TOP_CLIENTS_LIMIT]
        ]
        return totals

    def close_period(self, year: int, month: int, closed_by: UUID | None = None) -> ConsolidatedPeriod:
        """
        Consolidate and close a calendar month.

        Args:
            year: Calendar year
            month: Calendar month (1-12)
            closed_by: Operator to attribute (defaults to current actor)

        Returns:
            The CLOSED period with its totals

        Raises:
            PeriodAlreadyClosedError: If the month is already closed (carries the stored period)
            PeriodIncompleteError: If statements are missing for clients with sales
        """
        closed_by = closed_by or get_current_actor_id()
        period_id = period_id_for(year, month)

        existing = self.periods.get(period_id)
        if existing is not None and existing.is_closed:
            raise PeriodAlreadyClosedError(existing)

        statements = self.statements.list_for_period(year, month)
        if not statements:
            raise PeriodIncompleteError(period_id)

        first, last = month_range(year, month)
        active = self.sales.list_client_ids_with_sales(start_of_day(first), end_of_day(last))
        missing = sorted(active - {s.client_id for s in statements}, key=str)
        if missing:
            raise PeriodIncompleteError(period_id, missing)

        totals = self._aggregate(statements)

        consolidated_amounts: dict[str, int] = {}
        for currency in sorted({s.currency for s in statements}, key=lambda c: c.value):
            try:
                result = self.ledger.consolidate_into(period_id, currency, created_by=closed_by)
            except AlreadyConsolidatedError as e:
                logger.warning(
                    "Ledger already consolidated %s for %s; reusing the earlier result",
                    period_id, currency.value
                )
                result = e.prior
            consolidated_amounts[currency.value] = result.amount_scaled

        now = now_utc()
        stored = self.periods.close(ConsolidatedPeriod(
            period_id=period_id,
            year=year,
            month=month,
            state=PeriodState.CLOSED,
            totals=totals,
            statement_ids=[s.id for s in statements],
            consolidated_amounts=consolidated_amounts,
            opened_at=existing.opened_at if existing else now,
            closed_at=now,
            closed_by=closed_by,
        ))
        if stored is None:
            raise PeriodAlreadyClosedError(self.periods.get(period_id))

        self.audit.log_change(
            entity_type="period",
            entity_id=period_id,
            action=AuditAction.CONSOLIDATE,
            changes={
                "totals": totals.model_dump(mode="json"),
                "ledger": consolidated_amounts,
                "statement_count": len(statements),
            },
            actor_id=closed_by
        )

        logger.info(
            "Closed period %s: %d statements, agency net %s",
            period_id, len(statements), Money(totals.agency_net_scaled, self.config.default_currency)
        )
        self.event_bus.publish(PeriodClosed.create(period=stored))
        return stored

    def get_period(self, year: int, month: int) -> ConsolidatedPeriod | None:
        return self.periods.get(period_id_for(year, month))

    def list_periods(self) -> list[ConsolidatedPeriod]:
        return self.periods.list()
