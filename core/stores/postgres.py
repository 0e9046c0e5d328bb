"""
PostgreSQL implementations of the billing stores.

Schema lives in db/schema.sql. Unique-constraint violations are reported as
DuplicateKeyError carrying the violated constraint's name so callers can
tell an invoice-number collision from a duplicate billing period.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterable, Iterator
from uuid import UUID

import psycopg2.errors
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.exceptions import DuplicateKeyError
from core.models import (
    BillingPeriod,
    ConsolidatedPeriod,
    Currency,
    Invoice,
    InvoiceStatus,
    LedgerTransaction,
    MonthlyStatement,
    Payment,
    PeriodState,
    period_id_for,
)
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


@contextmanager
def _unique_violations_as_duplicate_key():
    try:
        yield
    except psycopg2.errors.UniqueViolation as e:
        constraint = e.diag.constraint_name or "unknown"
        logger.info("Unique constraint %s rejected write", constraint)
        raise DuplicateKeyError(constraint) from e


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


_MAX_SEQUENCE_SQL = """
    SELECT COALESCE(MAX(CAST(substring({column} FROM %s) AS BIGINT)), 0)
    FROM {table}
    WHERE {column} LIKE %s ESCAPE '\\'
      AND substring({column} FROM %s) ~ '^[0-9]+$'
"""


# =============================================================================
# INVOICES
# =============================================================================


class PostgresInvoiceStore:
    """Invoices table. Updated in place for status/balance fields only."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def insert(self, invoice: Invoice) -> Invoice:
        data = invoice.model_dump(mode="json")
        with _unique_violations_as_duplicate_key():
            row = self.postgres.execute_returning(
                """
                INSERT INTO invoices (
                    id, client_id, contract_id, invoice_number, status, currency,
                    period_year, period_month, period_half, line_items,
                    subtotal_scaled, discount_scaled, total_scaled, outstanding_scaled,
                    issue_date, cut_date, due_date, payment_ids, notes,
                    sales_total_scaled, sales_count, commission_percentage,
                    range_start, range_end, created_by, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s::uuid[], %s,
                    %s, %s, %s,
                    %s, %s, %s, %s, %s
                )
                RETURNING *
                """,
                (
                    data["id"], data["client_id"], data["contract_id"], data["invoice_number"],
                    data["status"], data["currency"],
                    data["period_year"], data["period_month"], data["period_half"],
                    Json(data["line_items"]),
                    data["subtotal_scaled"], data["discount_scaled"], data["total_scaled"],
                    data["outstanding_scaled"],
                    data["issue_date"], data["cut_date"], data["due_date"], data["payment_ids"],
                    data["notes"],
                    data["sales_total_scaled"], data["sales_count"], data["commission_percentage"],
                    data["range_start"], data["range_end"], data["created_by"],
                    data["created_at"], data["updated_at"],
                )
            )[0]
        return Invoice.model_validate(row)

    def get(self, invoice_id: UUID) -> Invoice | None:
        row = self.postgres.execute_single("SELECT * FROM invoices WHERE id = %s", (invoice_id,))
        return Invoice.model_validate(row) if row else None

    def compare_and_update(self, current: Invoice, updated: Invoice) -> Invoice | None:
        data = updated.model_dump(mode="json")
        rows = self.postgres.execute_returning(
            """
            UPDATE invoices
            SET status = %s, outstanding_scaled = %s, payment_ids = %s::uuid[],
                notes = %s, cancel_reason = %s, updated_at = %s,
                activated_at = %s, overdue_at = %s, paid_at = %s, cancelled_at = %s
            WHERE id = %s AND status = %s AND outstanding_scaled = %s
            RETURNING *
            """,
            (
                data["status"], data["outstanding_scaled"], data["payment_ids"],
                data["notes"], data["cancel_reason"], data["updated_at"],
                data["activated_at"], data["overdue_at"], data["paid_at"], data["cancelled_at"],
                current.id, current.status.value, current.outstanding_scaled,
            )
        )
        return Invoice.model_validate(rows[0]) if rows else None

    def number_exists(self, number: str) -> bool:
        return bool(self.postgres.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM invoices WHERE invoice_number = %s)",
            (number,)
        ))

    def max_sequence(self, prefix: str) -> int:
        start = len(prefix) + 1
        return int(self.postgres.execute_scalar(
            _MAX_SEQUENCE_SQL.format(table="invoices", column="invoice_number"),
            (start, f"{_escape_like(prefix)}%", start)
        ) or 0)

    def find_active_for_period(self, client_id: UUID, period: BillingPeriod) -> Invoice | None:
        row = self.postgres.execute_single(
            """
            SELECT * FROM invoices
            WHERE client_id = %s AND period_year = %s AND period_month = %s
              AND period_half IS NOT DISTINCT FROM %s
              AND status <> %s
            LIMIT 1
            """,
            (client_id, period.year, period.month, period.half, InvoiceStatus.CANCELLED.value)
        )
        return Invoice.model_validate(row) if row else None

    def list_due_for_activation(self, on_or_before: date) -> list[Invoice]:
        rows = self.postgres.execute(
            """
            SELECT * FROM invoices
            WHERE status = %s AND cut_date <= %s
            ORDER BY cut_date ASC, invoice_number ASC
            """,
            (InvoiceStatus.TRACKING.value, on_or_before)
        )
        return [Invoice.model_validate(row) for row in rows]

    def list_past_due(self, before: date) -> list[Invoice]:
        rows = self.postgres.execute(
            """
            SELECT * FROM invoices
            WHERE status IN (%s, %s) AND due_date < %s AND outstanding_scaled > 0
            ORDER BY due_date ASC, invoice_number ASC
            """,
            (InvoiceStatus.PENDING.value, InvoiceStatus.PARTIAL.value, before)
        )
        return [Invoice.model_validate(row) for row in rows]

    def list(
        self,
        statuses: Iterable[InvoiceStatus] | None = None,
        client_id: UUID | None = None,
        issued_from: date | None = None,
        issued_to: date | None = None,
    ) -> list[Invoice]:
        clauses, params = ["TRUE"], []
        if statuses is not None:
            clauses.append("status = ANY(%s)")
            params.append([s.value for s in statuses])
        if client_id is not None:
            clauses.append("client_id = %s")
            params.append(client_id)
        if issued_from is not None:
            clauses.append("issue_date >= %s")
            params.append(issued_from)
        if issued_to is not None:
            clauses.append("issue_date <= %s")
            params.append(issued_to)

        rows = self.postgres.execute(
            f"SELECT * FROM invoices WHERE {' AND '.join(clauses)} "
            "ORDER BY issue_date ASC, invoice_number ASC",
            tuple(params)
        )
        return [Invoice.model_validate(row) for row in rows]


# =============================================================================
# PAYMENTS
# =============================================================================


class PostgresPaymentStore:
    """Payments table. Insert-only."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def insert(self, payment: Payment) -> Payment:
        data = payment.model_dump(mode="json")
        with _unique_violations_as_duplicate_key():
            row = self.postgres.execute_returning(
                """
                INSERT INTO payments (
                    id, invoice_id, receipt_number, amount_scaled, currency,
                    paid_at, method, reference, notes, recorded_by, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    data["id"], data["invoice_id"], data["receipt_number"], data["amount_scaled"],
                    data["currency"], data["paid_at"], data["method"], data["reference"],
                    data["notes"], data["recorded_by"], data["created_at"],
                )
            )[0]
        return Payment.model_validate(row)

    def number_exists(self, number: str) -> bool:
        return bool(self.postgres.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM payments WHERE receipt_number = %s)",
            (number,)
        ))

    def max_sequence(self, prefix: str) -> int:
        start = len(prefix) + 1
        return int(self.postgres.execute_scalar(
            _MAX_SEQUENCE_SQL.format(table="payments", column="receipt_number"),
            (start, f"{_escape_like(prefix)}%", start)
        ) or 0)

    def list_for_invoices(self, invoice_ids: Iterable[UUID]) -> list[Payment]:
        ids = list(invoice_ids)
        if not ids:
            return []
        rows = self.postgres.execute(
            "SELECT * FROM payments WHERE invoice_id = ANY(%s::uuid[]) ORDER BY paid_at ASC",
            (ids,)
        )
        return [Payment.model_validate(row) for row in rows]


# =============================================================================
# STATEMENTS
# =============================================================================


class PostgresStatementStore:
    """Monthly statements, unique per (client_id, year, month)."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def upsert(self, statement: MonthlyStatement) -> MonthlyStatement:
        data = statement.model_dump(mode="json")
        row = self.postgres.execute_returning(
            """
            INSERT INTO monthly_statements (
                id, client_id, year, month, period_id, currency,
                gross_sales_scaled, agency_percentage, agency_commission_scaled,
                processor_percentage, processor_commission_scaled,
                client_payout_scaled, agency_net_scaled, sales_count,
                sales_by_type, active_days, daily_average_scaled, recompute_count,
                computed_at, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s,
                %s, %s,
                %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s
            )
            ON CONFLICT (client_id, year, month) DO UPDATE SET
                currency = EXCLUDED.currency,
                gross_sales_scaled = EXCLUDED.gross_sales_scaled,
                agency_percentage = EXCLUDED.agency_percentage,
                agency_commission_scaled = EXCLUDED.agency_commission_scaled,
                processor_percentage = EXCLUDED.processor_percentage,
                processor_commission_scaled = EXCLUDED.processor_commission_scaled,
                client_payout_scaled = EXCLUDED.client_payout_scaled,
                agency_net_scaled = EXCLUDED.agency_net_scaled,
                sales_count = EXCLUDED.sales_count,
                sales_by_type = EXCLUDED.sales_by_type,
                active_days = EXCLUDED.active_days,
                daily_average_scaled = EXCLUDED.daily_average_scaled,
                recompute_count = EXCLUDED.recompute_count,
                computed_at = EXCLUDED.computed_at,
                updated_at = EXCLUDED.updated_at
            RETURNING *
            """,
            (
                data["id"], data["client_id"], data["year"], data["month"], data["period_id"],
                data["currency"],
                data["gross_sales_scaled"], data["agency_percentage"], data["agency_commission_scaled"],
                data["processor_percentage"], data["processor_commission_scaled"],
                data["client_payout_scaled"], data["agency_net_scaled"], data["sales_count"],
                Json(data["sales_by_type"]), data["active_days"], data["daily_average_scaled"],
                data["recompute_count"],
                data["computed_at"], data["created_at"], data["updated_at"],
            )
        )[0]
        return MonthlyStatement.model_validate(row)

    def get(self, client_id: UUID, year: int, month: int) -> MonthlyStatement | None:
        row = self.postgres.execute_single(
            "SELECT * FROM monthly_statements WHERE client_id = %s AND year = %s AND month = %s",
            (client_id, year, month)
        )
        return MonthlyStatement.model_validate(row) if row else None

    def list_for_period(self, year: int, month: int) -> list[MonthlyStatement]:
        rows = self.postgres.execute(
            "SELECT * FROM monthly_statements WHERE year = %s AND month = %s ORDER BY client_id",
            (year, month)
        )
        return [MonthlyStatement.model_validate(row) for row in rows]


# =============================================================================
# PERIODS
# =============================================================================


class PostgresPeriodStore:
    """Consolidated periods keyed by 'YYYY-MM'."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self, period_id: str) -> ConsolidatedPeriod | None:
        row = self.postgres.execute_single(
            "SELECT * FROM consolidated_periods WHERE period_id = %s", (period_id,)
        )
        return ConsolidatedPeriod.model_validate(row) if row else None

    def ensure_open(self, year: int, month: int) -> ConsolidatedPeriod:
        period_id = period_id_for(year, month)
        self.postgres.execute(
            """
            INSERT INTO consolidated_periods (period_id, year, month, state, totals, opened_at)
            VALUES (%s, %s, %s, %s, '{}'::jsonb, %s)
            ON CONFLICT (period_id) DO NOTHING
            """,
            (period_id, year, month, PeriodState.OPEN.value, now_utc())
        )
        return self.get(period_id)

    def close(self, period: ConsolidatedPeriod) -> ConsolidatedPeriod | None:
        data = period.model_dump(mode="json")
        rows = self.postgres.execute_returning(
            """
            INSERT INTO consolidated_periods (
                period_id, year, month, state, totals, statement_ids,
                consolidated_amounts, opened_at, closed_at, closed_by
            ) VALUES (%s, %s, %s, %s, %s, %s::uuid[], %s, %s, %s, %s)
            ON CONFLICT (period_id) DO UPDATE SET
                state = EXCLUDED.state,
                totals = EXCLUDED.totals,
                statement_ids = EXCLUDED.statement_ids,
                consolidated_amounts = EXCLUDED.consolidated_amounts,
                closed_at = EXCLUDED.closed_at,
                closed_by = EXCLUDED.closed_by
            WHERE consolidated_periods.state = %s
            RETURNING *
            """,
            (
                data["period_id"], data["year"], data["month"], data["state"],
                Json(data["totals"]), data["statement_ids"], Json(data["consolidated_amounts"]),
                data["opened_at"], data["closed_at"], data["closed_by"],
                PeriodState.OPEN.value,
            )
        )
        return ConsolidatedPeriod.model_validate(rows[0]) if rows else None

    def list(self) -> list[ConsolidatedPeriod]:
        rows = self.postgres.execute("SELECT * FROM consolidated_periods ORDER BY period_id")
        return [ConsolidatedPeriod.model_validate(row) for row in rows]


# =============================================================================
# LEDGER
# =============================================================================


_LEDGER_INSERT_SQL = """
    INSERT INTO ledger_transactions (
        id, currency, pool, entry_type, amount_scaled, reason,
        reference, period_id, description, created_by, created_at
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


def _ledger_params(transaction: LedgerTransaction) -> tuple[Any, ...]:
    data = transaction.model_dump(mode="json")
    return (
        data["id"], data["currency"], data["pool"], data["entry_type"], data["amount_scaled"],
        data["reason"], data["reference"], data["period_id"], data["description"],
        data["created_by"], data["created_at"],
    )


class _PostgresLedgerSession:
    """Reads and appends inside the transaction that holds the advisory lock."""

    def __init__(self, cursor, currency: Currency):
        self._cursor = cursor
        self._currency = currency

    def transactions(self) -> list[LedgerTransaction]:
        self._cursor.execute(
            "SELECT * FROM ledger_transactions WHERE currency = %s ORDER BY created_at, id",
            (self._currency.value,)
        )
        return [LedgerTransaction.model_validate(dict(row)) for row in self._cursor.fetchall()]

    def append(self, transaction: LedgerTransaction) -> LedgerTransaction:
        self._cursor.execute(_LEDGER_INSERT_SQL, _ledger_params(transaction))
        return transaction


class PostgresLedgerStore:
    """Append-only ledger_transactions table. No UPDATE or DELETE is ever issued."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def append(self, transaction: LedgerTransaction) -> LedgerTransaction:
        self.postgres.execute(_LEDGER_INSERT_SQL, _ledger_params(transaction))
        return transaction

    @contextmanager
    def exclusive(self, currency: Currency) -> Iterator[_PostgresLedgerSession]:
        with self.postgres.transaction(lock_key=f"ledger:{currency.value}") as cur:
            yield _PostgresLedgerSession(cur, currency)

    def list(
        self,
        currency: Currency,
        reference: str | None = None,
        period_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[LedgerTransaction]:
        clauses, params = ["currency = %s"], [currency.value]
        if reference is not None:
            clauses.append("reference = %s")
            params.append(reference)
        if period_id is not None:
            clauses.append("period_id = %s")
            params.append(period_id)
        if start is not None:
            clauses.append("created_at >= %s")
            params.append(start)
        if end is not None:
            clauses.append("created_at <= %s")
            params.append(end)

        rows = self.postgres.execute(
            f"SELECT * FROM ledger_transactions WHERE {' AND '.join(clauses)} "
            "ORDER BY created_at, id",
            tuple(params)
        )
        return [LedgerTransaction.model_validate(row) for row in rows]
