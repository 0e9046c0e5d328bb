"""Persistence for billing state: protocols plus in-memory and PostgreSQL backends."""

from core.stores.base import (
    INVOICE_CLIENT_PERIOD_CONSTRAINT,
    INVOICE_NUMBER_CONSTRAINT,
    RECEIPT_NUMBER_CONSTRAINT,
    InvoiceStore,
    LedgerSession,
    LedgerStore,
    NumberRegistry,
    PaymentStore,
    PeriodStore,
    StatementStore,
)
from core.stores.memory import (
    InMemoryContractDirectory,
    InMemoryInvoiceStore,
    InMemoryLedgerStore,
    InMemoryPaymentStore,
    InMemoryPeriodStore,
    InMemorySalesSource,
    InMemoryStatementStore,
)

__all__ = [
    "INVOICE_CLIENT_PERIOD_CONSTRAINT", "INVOICE_NUMBER_CONSTRAINT", "RECEIPT_NUMBER_CONSTRAINT",
    "InvoiceStore", "LedgerSession", "LedgerStore", "NumberRegistry",
    "PaymentStore", "PeriodStore", "StatementStore",
    "InMemoryContractDirectory", "InMemoryInvoiceStore", "InMemoryLedgerStore",
    "InMemoryPaymentStore", "InMemoryPeriodStore", "InMemorySalesSource", "InMemoryStatementStore",
]
