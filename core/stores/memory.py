"""
In-process implementations of the billing stores and collaborators.

Used by tests and single-process deployments. Each store guards its dicts
with its own lock, held only for dict/list operations. Entities are copied
on the way in and out so callers never share mutable state with the store.
"""

import re
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterable, Iterator
from uuid import UUID

from core.exceptions import DuplicateKeyError
from core.models import (
    BillingPeriod,
    CommissionScale,
    ConsolidatedPeriod,
    Contract,
    Currency,
    Invoice,
    InvoiceStatus,
    LedgerTransaction,
    MonthlyStatement,
    Payment,
    PeriodState,
    Sale,
    period_id_for,
)
from core.stores.base import (
    INVOICE_CLIENT_PERIOD_CONSTRAINT,
    INVOICE_NUMBER_CONSTRAINT,
    RECEIPT_NUMBER_CONSTRAINT,
)
from utils.timezone import now_utc


_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _max_sequence(numbers: Iterable[str], prefix: str) -> int:
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for number in numbers:
        match = pattern.match(number)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


class InMemoryInvoiceStore:
    """Invoices keyed by id with number and active-period uniqueness."""

    def __init__(self):
        self._invoices: dict[UUID, Invoice] = {}
        self._lock = threading.Lock()

    def _active_for_period(self, client_id: UUID, key: tuple) -> Invoice | None:
        for invoice in self._invoices.values():
            if (
                invoice.client_id == client_id
                and invoice.status != InvoiceStatus.CANCELLED
                and invoice.period is not None
                and invoice.period.key() == key
            ):
                return invoice
        return None

    def insert(self, invoice: Invoice) -> Invoice:
        with self._lock:
            if any(i.invoice_number == invoice.invoice_number for i in self._invoices.values()):
                raise DuplicateKeyError(INVOICE_NUMBER_CONSTRAINT)
            period = invoice.period
            if period is not None and self._active_for_period(invoice.client_id, period.key()):
                raise DuplicateKeyError(INVOICE_CLIENT_PERIOD_CONSTRAINT)
            self._invoices[invoice.id] = invoice.model_copy(deep=True)
        return invoice.model_copy(deep=True)

    def get(self, invoice_id: UUID) -> Invoice | None:
        with self._lock:
            invoice = self._invoices.get(invoice_id)
        return invoice.model_copy(deep=True) if invoice else None

    def compare_and_update(self, current: Invoice, updated: Invoice) -> Invoice | None:
        with self._lock:
            stored = self._invoices.get(current.id)
            if stored is None:
                return None
            if (stored.status, stored.outstanding_scaled) != (current.status, current.outstanding_scaled):
                return None
            self._invoices[current.id] = updated.model_copy(deep=True)
        return updated.model_copy(deep=True)

    def number_exists(self, number: str) -> bool:
        with self._lock:
            return any(i.invoice_number == number for i in self._invoices.values())

    def max_sequence(self, prefix: str) -> int:
        with self._lock:
            numbers = [i.invoice_number for i in self._invoices.values()]
        return _max_sequence(numbers, prefix)

    def find_active_for_period(self, client_id: UUID, period: BillingPeriod) -> Invoice | None:
        with self._lock:
            invoice = self._active_for_period(client_id, period.key())
        return invoice.model_copy(deep=True) if invoice else None

    def list_due_for_activation(self, on_or_before: date) -> list[Invoice]:
        return [
            i for i in self.list(statuses=[InvoiceStatus.TRACKING])
            if i.cut_date <= on_or_before
        ]

    def list_past_due(self, before: date) -> list[Invoice]:
        return [
            i for i in self.list(statuses=[InvoiceStatus.PENDING, InvoiceStatus.PARTIAL])
            if i.due_date < before and i.outstanding_scaled > 0
        ]

    def list(
        self,
        statuses: Iterable[InvoiceStatus] | None = None,
        client_id: UUID | None = None,
        issued_from: date | None = None,
        issued_to: date | None = None,
    ) -> list[Invoice]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            snapshot = [i.model_copy(deep=True) for i in self._invoices.values()]

        result = [
            i for i in snapshot
            if (wanted is None or i.status in wanted)
            and (client_id is None or i.client_id == client_id)
            and (issued_from is None or i.issue_date >= issued_from)
            and (issued_to is None or i.issue_date <= issued_to)
        ]
        return sorted(result, key=lambda i: (i.issue_date, i.invoice_number))


class InMemoryPaymentStore:
    """Payments, unique by receipt number."""

    def __init__(self):
        self._payments: dict[UUID, Payment] = {}
        self._lock = threading.Lock()

    def insert(self, payment: Payment) -> Payment:
        with self._lock:
            if any(p.receipt_number == payment.receipt_number for p in self._payments.values()):
                raise DuplicateKeyError(RECEIPT_NUMBER_CONSTRAINT)
            self._payments[payment.id] = payment.model_copy(deep=True)
        return payment.model_copy(deep=True)

    def number_exists(self, number: str) -> bool:
        with self._lock:
            return any(p.receipt_number == number for p in self._payments.values())

    def max_sequence(self, prefix: str) -> int:
        with self._lock:
            numbers = [p.receipt_number for p in self._payments.values()]
        return _max_sequence(numbers, prefix)

    def list_for_invoices(self, invoice_ids: Iterable[UUID]) -> list[Payment]:
        wanted = set(invoice_ids)
        with self._lock:
            result = [p.model_copy(deep=True) for p in self._payments.values() if p.invoice_id in wanted]
        return sorted(result, key=lambda p: p.paid_at)


class InMemoryStatementStore:
    """One statement per (client, year, month)."""

    def __init__(self):
        self._statements: dict[tuple[UUID, int, int], MonthlyStatement] = {}
        self._lock = threading.Lock()

    def upsert(self, statement: MonthlyStatement) -> MonthlyStatement:
        key = (statement.client_id, statement.year, statement.month)
        with self._lock:
            self._statements[key] = statement.model_copy(deep=True)
        return statement.model_copy(deep=True)

    def get(self, client_id: UUID, year: int, month: int) -> MonthlyStatement | None:
        with self._lock:
            statement = self._statements.get((client_id, year, month))
        return statement.model_copy(deep=True) if statement else None

    def list_for_period(self, year: int, month: int) -> list[MonthlyStatement]:
        with self._lock:
            result = [
                s.model_copy(deep=True) for (_, y, m), s in self._statements.items()
                if y == year and m == month
            ]
        return sorted(result, key=lambda s: str(s.client_id))


class InMemoryPeriodStore:
    """Consolidated periods keyed by YYYY-MM."""

    def __init__(self):
        self._periods: dict[str, ConsolidatedPeriod] = {}
        self._lock = threading.Lock()

    def get(self, period_id: str) -> ConsolidatedPeriod | None:
        with self._lock:
            period = self._periods.get(period_id)
        return period.model_copy(deep=True) if period else None

    def ensure_open(self, year: int, month: int) -> ConsolidatedPeriod:
        period_id = period_id_for(year, month)
        with self._lock:
            if period_id not in self._periods:
                self._periods[period_id] = ConsolidatedPeriod(
                    period_id=period_id, year=year, month=month, opened_at=now_utc(),
                )
            period = self._periods[period_id]
        return period.model_copy(deep=True)

    def close(self, period: ConsolidatedPeriod) -> ConsolidatedPeriod | None:
        with self._lock:
            stored = self._periods.get(period.period_id)
            if stored is not None and stored.state == PeriodState.CLOSED:
                return None
            self._periods[period.period_id] = period.model_copy(deep=True)
        return period.model_copy(deep=True)

    def list(self) -> list[ConsolidatedPeriod]:
        with self._lock:
            result = [p.model_copy(deep=True) for p in self._periods.values()]
        return sorted(result, key=lambda p: p.period_id)


class _InMemoryLedgerSession:
    def __init__(self, store: "InMemoryLedgerStore", currency: Currency):
        self._store = store
        self._currency = currency

    def transactions(self) -> list[LedgerTransaction]:
        return self._store.list(self._currency)

    def append(self, transaction: LedgerTransaction) -> LedgerTransaction:
        return self._store.append(transaction)


class InMemoryLedgerStore:
    """Append-only transaction log with one consolidation lock per currency."""

    def __init__(self):
        self._log: list[LedgerTransaction] = []
        self._lock = threading.Lock()
        self._consolidation_locks: dict[Currency, threading.Lock] = defaultdict(threading.Lock)

    def append(self, transaction: LedgerTransaction) -> LedgerTransaction:
        with self._lock:
            self._log.append(transaction.model_copy(deep=True))
        return transaction

    def list(
        self,
        currency: Currency,
        reference: str | None = None,
        period_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[LedgerTransaction]:
        with self._lock:
            snapshot = list(self._log)
        return [
            t.model_copy(deep=True) for t in snapshot
            if t.currency == currency
            and (reference is None or t.reference == reference)
            and (period_id is None or t.period_id == period_id)
            and (start is None or t.created_at >= start)
            and (end is None or t.created_at <= end)
        ]

    @contextmanager
    def exclusive(self, currency: Currency) -> Iterator[_InMemoryLedgerSession]:
        with self._lock:
            consolidation_lock = self._consolidation_locks[currency]
        with consolidation_lock:
            yield _InMemoryLedgerSession(self, currency)


class InMemorySalesSource:
    """Sales ledger stand-in fed directly by the caller."""

    def __init__(self, sales: Iterable[Sale] = ()):
        self._sales: list[Sale] = list(sales)
        self._lock = threading.Lock()

    def add(self, sale: Sale) -> Sale:
        with self._lock:
            self._sales.append(sale)
        return sale

    def list_sales(self, client_id: UUID, start: datetime, end: datetime) -> list[Sale]:
        with self._lock:
            snapshot = list(self._sales)
        return sorted(
            (s for s in snapshot if s.client_id == client_id and start <= s.occurred_at <= end),
            key=lambda s: s.occurred_at,
        )

    def list_client_ids_with_sales(self, start: datetime, end: datetime) -> set[UUID]:
        with self._lock:
            snapshot = list(self._sales)
        return {s.client_id for s in snapshot if start <= s.occurred_at <= end}


class InMemoryContractDirectory:
    """Contract directory stand-in. The latest signed contract per client wins."""

    def __init__(self, contracts: Iterable[Contract] = (), scales: Iterable[CommissionScale] = ()):
        self._contracts: list[Contract] = list(contracts)
        self._scales: dict[UUID, CommissionScale] = {s.id: s for s in scales}

    def add_contract(self, contract: Contract) -> Contract:
        self._contracts.append(contract)
        return contract

    def add_scale(self, scale: CommissionScale) -> CommissionScale:
        self._scales[scale.id] = scale
        return scale

    def get_current_contract(self, client_id: UUID) -> Contract | None:
        candidates = [c for c in self._contracts if c.client_id == client_id]
        if not candidates:
            return None
        return max(candidates, key=lambda c: (c.signed_at or _NEVER, c.start_date))

    def get_scale(self, scale_id: UUID) -> CommissionScale | None:
        return self._scales.get(scale_id)

    def list_contracts(self) -> list[Contract]:
        clients = {c.client_id for c in self._contracts}
        return [self.get_current_contract(client_id) for client_id in clients]
