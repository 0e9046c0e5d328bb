"""
Persistence contracts for billing state.

Each store has an in-memory implementation (core.stores.memory) and a
PostgreSQL implementation (core.stores.postgres). Stores enforce the
uniqueness backstops themselves and report violations as DuplicateKeyError
with the constraint name below.
"""

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Iterable, Protocol
from uuid import UUID

from core.models import (
    BillingPeriod,
    ConsolidatedPeriod,
    Currency,
    Invoice,
    InvoiceStatus,
    LedgerTransaction,
    MonthlyStatement,
    Payment,
)

INVOICE_NUMBER_CONSTRAINT = "invoices_invoice_number_key"
INVOICE_CLIENT_PERIOD_CONSTRAINT = "invoices_active_client_period_key"
RECEIPT_NUMBER_CONSTRAINT = "payments_receipt_number_key"


class NumberRegistry(Protocol):
    """What the number allocator needs to know about already-issued numbers."""

    def number_exists(self, number: str) -> bool: ...

    def max_sequence(self, prefix: str) -> int:
        """Highest integer suffix among numbers shaped `<prefix><digits>`; 0 if none."""
        ...


class InvoiceStore(NumberRegistry, Protocol):
    def insert(self, invoice: Invoice) -> Invoice: ...

    def get(self, invoice_id: UUID) -> Invoice | None: ...

    def compare_and_update(self, current: Invoice, updated: Invoice) -> Invoice | None:
        """
        Persist `updated` only if the stored row still has current's status
        and outstanding balance. Returns None when another writer got there first.
        """
        ...

    def find_active_for_period(self, client_id: UUID, period: BillingPeriod) -> Invoice | None: ...

    def list_due_for_activation(self, on_or_before: date) -> list[Invoice]: ...

    def list_past_due(self, before: date) -> list[Invoice]: ...

    def list(
        self,
        statuses: Iterable[InvoiceStatus] | None = None,
        client_id: UUID | None = None,
        issued_from: date | None = None,
        issued_to: date | None = None,
    ) -> list[Invoice]: ...


class PaymentStore(NumberRegistry, Protocol):
    def insert(self, payment: Payment) -> Payment: ...

    def list_for_invoices(self, invoice_ids: Iterable[UUID]) -> list[Payment]: ...


class StatementStore(Protocol):
    def upsert(self, statement: MonthlyStatement) -> MonthlyStatement: ...

    def get(self, client_id: UUID, year: int, month: int) -> MonthlyStatement | None: ...

    def list_for_period(self, year: int, month: int) -> list[MonthlyStatement]: ...


class PeriodStore(Protocol):
    def get(self, period_id: str) -> ConsolidatedPeriod | None: ...

    def ensure_open(self, year: int, month: int) -> ConsolidatedPeriod: ...

    def close(self, period: ConsolidatedPeriod) -> ConsolidatedPeriod | None:
        """Persist a CLOSED period only if it is still OPEN; None otherwise."""
        ...

    def list(self) -> list[ConsolidatedPeriod]: ...


class LedgerSession(Protocol):
    """Exclusive view of one currency's log during consolidation."""

    def transactions(self) -> list[LedgerTransaction]: ...

    def append(self, transaction: LedgerTransaction) -> LedgerTransaction: ...


class LedgerStore(Protocol):
    def append(self, transaction: LedgerTransaction) -> LedgerTransaction: ...

    def list(
        self,
        currency: Currency,
        reference: str | None = None,
        period_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[LedgerTransaction]: ...

    def exclusive(self, currency: Currency) -> AbstractContextManager[LedgerSession]:
        """Serialize consolidation per currency. Plain appends are not blocked."""
        ...
