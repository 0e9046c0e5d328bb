"""
Monthly financial statements.

A statement splits a client's gross sales for a calendar month:

    agency_commission    = gross x agency %
    processor_commission = agency_commission x processor %
    client_payout        = gross - agency_commission
    agency_net           = agency_commission - processor_commission

The processor fee comes out of the agency's share only; the client payout is
unaffected by it.

Each compute credits agency_net to the ledger's in-movement pool. A recompute
first debits the previously credited agency_net so the in-movement balance
always equals the revenue currently recognized.
"""

import logging
from decimal import Decimal
from typing import Iterable
from uuid import UUID, uuid4

from core.audit import AuditAction, AuditLogger, compute_changes
from core.collaborators import ContractDirectory, SalesSource
from core.config import BillingConfig
from core.exceptions import PeriodClosedError
from core.models import (
    CommissionType,
    LedgerReason,
    Money,
    MonthlyStatement,
    StatementBatchResult,
    period_id_for,
)
from core.services.commission_service import CommissionCalculator
from core.services.ledger_service import LedgerService
from core.services.period_calculator import month_range
from core.stores.base import PeriodStore, StatementStore
from utils.timezone import as_date, end_of_day, now_utc, start_of_day

logger = logging.getLogger(__name__)


class StatementService:
    """Service for computing and reading monthly statements."""

    def __init__(
        self,
        statements: StatementStore,
        periods: PeriodStore,
        sales: SalesSource,
        contracts: ContractDirectory,
        ledger: LedgerService,
        audit: AuditLogger,
        config: BillingConfig | None = None,
        commission: CommissionCalculator | None = None
    ):
        self.statements = statements
        self.periods = periods
        self.sales = sales
        self.contracts = contracts
        self.ledger = ledger
        self.audit = audit
        self.config = config or BillingConfig()
        self.commission = commission or CommissionCalculator()

    def _ensure_period_open(self, year: int, month: int) -> str:
        period_id = period_id_for(year, month)
        period = self.periods.get(period_id)
        if period is not None and period.is_closed:
            raise PeriodClosedError(period_id)
        return period_id

    def compute_statement(
        self,
        client_id: UUID,
        year: int,
        month: int,
        processor_percentage: Decimal | None = None
    ) -> MonthlyStatement:
        """
        Compute (or recompute) a client's statement for a month.

        Args:
            client_id: Client UUID
            year: Calendar year
            month: Calendar month (1-12)
            processor_percentage: Processor fee override (defaults to config)

        Returns:
            Stored statement

        Raises:
            PeriodClosedError: If the month is already consolidated
            ValueError: If the client has no contract or its scale is missing
        """
        period_id = self._ensure_period_open(year, month)

        contract = self.contracts.get_current_contract(client_id)
        if contract is None:
            raise ValueError(f"Client {client_id} has no contract")

        scale = None
        if contract.commission_type == CommissionType.TIERED:
            scale = self.contracts.get_scale(contract.tiered_scale_id)
            if scale is None:
                raise ValueError(f"Commission scale {contract.tiered_scale_id} not found")

        first, last = month_range(year, month)
        sales = self.sales.list_sales(client_id, start_of_day(first), end_of_day(last))
        currency = contract.currency

        gross = Money.sum((sale.amount for sale in sales), currency)
        agency_percentage, agency_commission = self.commission.commission_for(gross, contract, scale)
        if processor_percentage is None:
            processor_percentage = self.config.processor_fee_percentage
        processor_commission = agency_commission.percentage(processor_percentage)
        client_payout = gross - agency_commission
        agency_net = agency_commission - processor_commission

        sales_by_type: dict[str, int] = {}
        for sale in sales:
            sales_by_type[sale.sale_type] = sales_by_type.get(sale.sale_type, 0) + sale.amount_scaled
        active_days = len({as_date(sale.occurred_at) for sale in sales})
        daily_average = gross.divide(active_days) if active_days else Money.zero(currency)

        self.periods.ensure_open(year, month)
        existing = self.statements.get(client_id, year, month)
        now = now_utc()

        statement = self.statements.upsert(MonthlyStatement(
            id=existing.id if existing else uuid4(),
            client_id=client_id,
            year=year,
            month=month,
            period_id=period_id,
            currency=currency,
            gross_sales_scaled=gross.scaled,
            agency_percentage=agency_percentage,
            agency_commission_scaled=agency_commission.scaled,
            processor_percentage=processor_percentage,
            processor_commission_scaled=processor_commission.scaled,
            client_payout_scaled=client_payout.scaled,
            agency_net_scaled=agency_net.scaled,
            sales_count=len(sales),
            sales_by_type=sales_by_type,
            active_days=active_days,
            daily_average_scaled=daily_average.scaled,
            recompute_count=existing.recompute_count + 1 if existing else 0,
            computed_at=now,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        ))

        reference = str(statement.id)
        if existing is not None and existing.agency_net.is_positive():
            self.ledger.debit(
                existing.agency_net,
                LedgerReason.STATEMENT_RECALCULATION,
                reference=reference,
                period_id=period_id,
                description=f"Reversal of previous statement revenue for {period_id}",
            )
        if agency_net.is_positive():
            self.ledger.credit(
                agency_net,
                LedgerReason.STATEMENT_REVENUE,
                reference=reference,
                period_id=period_id,
                description=f"Statement revenue for {period_id}",
            )

        if existing is None:
            self.audit.log_change(
                entity_type="statement",
                entity_id=statement.id,
                action=AuditAction.CREATE,
                changes={"created": statement.model_dump(mode="json")}
            )
        else:
            self.audit.log_change(
                entity_type="statement",
                entity_id=statement.id,
                action=AuditAction.UPDATE,
                changes=compute_changes(
                    existing.model_dump(mode="json"),
                    statement.model_dump(mode="json"),
                    exclude_fields={"updated_at", "computed_at"}
                )
            )

        logger.info(
            "Statement %s for client %s: gross %s, agency %s%%, net %s (recompute %d)",
            period_id, client_id, gross, agency_percentage, agency_net, statement.recompute_count
        )
        return statement

    def compute_all(
        self,
        year: int,
        month: int,
        client_ids: Iterable[UUID] | None = None
    ) -> StatementBatchResult:
        """
        Compute statements for every client with sales in the month.

        Raises:
            PeriodClosedError: If the month is already consolidated
        """
        self._ensure_period_open(year, month)

        if client_ids is None:
            first, last = month_range(year, month)
            client_ids = self.sales.list_client_ids_with_sales(start_of_day(first), end_of_day(last))

        result = StatementBatchResult()
        for client_id in sorted(client_ids, key=str):
            try:
                result.computed.append(self.compute_statement(client_id, year, month))
            except Exception as e:
                logger.exception("Failed to compute statement for client %s in %d-%02d", client_id, year, month)
                result.failed[str(client_id)] = str(e)

        logger.info(
            "Statement run %d-%02d: %d computed, %d failed",
            year, month, len(result.computed), len(result.failed)
        )
        return result

    def get_statement(self, client_id: UUID, year: int, month: int) -> MonthlyStatement | None:
        return self.statements.get(client_id, year, month)

    def list_for_period(self, year: int, month: int) -> list[MonthlyStatement]:
        return self.statements.list_for_period(year, month)
