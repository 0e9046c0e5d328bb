"""
Billing engine facade.

Wires the stores, collaborators and services together and exposes the
inbound operations. Use BillingEngine.in_memory() for tests and
single-process runs, BillingEngine.from_postgres() against a database.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, InMemoryAuditLogger
from core.collaborators import ContractDirectory, Notifier, SalesSource
from core.config import BillingConfig
from core.event_bus import EventBus
from core.handlers.notification_handlers import NOTIFICATION_HANDLERS
from core.models import (
    ConsolidatedPeriod,
    Currency,
    Invoice,
    LedgerState,
    ManualInvoiceCreate,
    MonthlyStatement,
    Payment,
    PaymentCreate,
)
from core.scheduler import ActivationScheduler
from core.services.commission_service import CommissionCalculator
from core.services.consolidation_service import ConsolidationService
from core.services.invoice_service import InvoiceService
from core.services.ledger_service import LedgerService
from core.services.statement_service import StatementService
from core.stores.base import InvoiceStore, LedgerStore, PaymentStore, PeriodStore, StatementStore
from core.stores.memory import (
    InMemoryContractDirectory,
    InMemoryInvoiceStore,
    InMemoryLedgerStore,
    InMemoryPaymentStore,
    InMemoryPeriodStore,
    InMemorySalesSource,
    InMemoryStatementStore,
)

logger = logging.getLogger(__name__)


class BillingEngine:
    """Entry point for every billing operation."""

    def __init__(
        self,
        invoices: InvoiceStore,
        payments: PaymentStore,
        statements: StatementStore,
        periods: PeriodStore,
        ledger_store: LedgerStore,
        sales: SalesSource,
        contracts: ContractDirectory,
        audit: AuditLogger,
        event_bus: EventBus | None = None,
        config: BillingConfig | None = None
    ):
        self.config = config or BillingConfig()
        self.event_bus = event_bus or EventBus()
        self.audit = audit
        self.sales = sales
        self.contracts = contracts

        self.commission = CommissionCalculator()
        self.ledger = LedgerService(ledger_store)
        self.invoices = InvoiceService(
            invoices, payments, sales, contracts, audit, self.event_bus,
            config=self.config, commission=self.commission,
        )
        self.statements = StatementService(
            statements, periods, sales, contracts, self.ledger, audit,
            config=self.config, commission=self.commission,
        )
        self.consolidation = ConsolidationService(
            periods, statements, sales, self.ledger, audit, self.event_bus, config=self.config,
        )
        self.scheduler = ActivationScheduler(self.invoices, self.config)

    @classmethod
    def in_memory(
        cls,
        sales: SalesSource | None = None,
        contracts: ContractDirectory | None = None,
        config: BillingConfig | None = None,
        event_bus: EventBus | None = None
    ) -> "BillingEngine":
        """Engine backed entirely by process-local stores."""
        return cls(
            invoices=InMemoryInvoiceStore(),
            payments=InMemoryPaymentStore(),
            statements=InMemoryStatementStore(),
            periods=InMemoryPeriodStore(),
            ledger_store=InMemoryLedgerStore(),
            sales=sales or InMemorySalesSource(),
            contracts=contracts or InMemoryContractDirectory(),
            audit=InMemoryAuditLogger(),
            event_bus=event_bus,
            config=config,
        )

    @classmethod
    def from_postgres(
        cls,
        postgres: PostgresClient,
        sales: SalesSource,
        contracts: ContractDirectory,
        config: BillingConfig | None = None,
        event_bus: EventBus | None = None
    ) -> "BillingEngine":
        """Engine persisting to the schema in db/schema.sql."""
        from core.stores.postgres import (
            PostgresInvoiceStore,
            PostgresLedgerStore,
            PostgresPaymentStore,
            PostgresPeriodStore,
            PostgresStatementStore,
        )

        return cls(
            invoices=PostgresInvoiceStore(postgres),
            payments=PostgresPaymentStore(postgres),
            statements=PostgresStatementStore(postgres),
            periods=PostgresPeriodStore(postgres),
            ledger_store=PostgresLedgerStore(postgres),
            sales=sales,
            contracts=contracts,
            audit=AuditLogger(postgres),
            event_bus=event_bus,
            config=config,
        )

    @classmethod
    def from_vault(
        cls,
        sales: SalesSource,
        contracts: ContractDirectory,
        config: BillingConfig | None = None
    ) -> "BillingEngine":
        """Postgres-backed engine using the database URL and settings stored in Vault."""
        from clients.vault_client import get_billing_settings, get_database_url

        config = config or BillingConfig(**get_billing_settings())
        return cls.from_postgres(PostgresClient(get_database_url()), sales, contracts, config=config)

    def subscribe_notifier(self, notifier: Notifier) -> None:
        """Forward invoice and period events to notifier."""
        for event_type, factory in NOTIFICATION_HANDLERS.items():
            self.event_bus.subscribe(event_type, factory(notifier))
        logger.info("Notifier subscribed to %d event types", len(NOTIFICATION_HANDLERS))

    def services(self) -> dict:
        """Services keyed by API domain."""
        return {
            "invoice": self.invoices,
            "statement": self.statements,
            "period": self.consolidation,
            "ledger": self.ledger,
            "contracts": self.contracts,
        }

    # =========================================================================
    # INBOUND OPERATIONS
    # =========================================================================

    def create_scheduled_invoice(self, client_id: UUID, reference_date: date | None = None) -> Invoice:
        """
        Create the scheduled invoice for a client's current contract.

        Raises:
            ValueError: If the client has no contract
        """
        contract = self.contracts.get_current_contract(client_id)
        if contract is None:
            raise ValueError(f"Client {client_id} has no contract")
        return self.invoices.create_scheduled(contract, reference_date)

    def create_scheduled_invoices(self, client_ids: Iterable[UUID], reference_date: date | None = None):
        contracts = []
        for client_id in client_ids:
            contract = self.contracts.get_current_contract(client_id)
            if contract is None:
                logger.info("Client %s has no contract, skipping", client_id)
                continue
            contracts.append(contract)
        return self.invoices.generate_scheduled_for_all(contracts, reference_date)

    def create_manual_invoice(self, data: ManualInvoiceCreate) -> Invoice:
        return self.invoices.create_manual(data)

    def record_payment(self, invoice_id: UUID, data: PaymentCreate) -> tuple[Invoice, Payment]:
        return self.invoices.apply_payment(invoice_id, data)

    def compute_statement(
        self,
        client_id: UUID,
        year: int,
        month: int,
        processor_percentage: Decimal | None = None
    ) -> MonthlyStatement:
        return self.statements.compute_statement(client_id, year, month, processor_percentage)

    def close_period(self, year: int, month: int) -> ConsolidatedPeriod:
        return self.consolidation.close_period(year, month)

    def get_ledger_state(self, currency: Currency) -> LedgerState:
        return self.ledger.get_state(currency)
