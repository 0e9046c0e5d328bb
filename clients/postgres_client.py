"""
PostgreSQL access for the billing stores.

One psycopg2 ThreadedConnectionPool per database URL, shared by every
PostgresClient pointing at it. The execute* helpers run a single statement
and commit. Work that has to be atomic, such as a ledger consolidation pair,
runs inside transaction(), optionally serialized by a transaction-scoped
advisory lock.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# uuid and jsonb adapters are process-wide in psycopg2
_adapters_registered = False

Params = Tuple | Dict | None


class PostgresClient:
    """
    Pooled PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)
        pending = db.execute("SELECT * FROM invoices WHERE status = %s", ("PENDING",))

        with db.transaction(lock_key="ledger:USD") as cur:
            cur.execute("SELECT ... FROM ledger_transactions WHERE currency = %s", ("USD",))
            cur.execute("INSERT INTO ledger_transactions ...")
    """

    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        global _adapters_registered

        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                if not _adapters_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    psycopg2.extras.register_uuid()
                    _adapters_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info(
                    "Billing database pool created (%d-%d connections)",
                    self._min_connections, self._max_connections
                )
            return pool

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection; rolled back on error before it is returned."""
        pool = self._ensure_connection_pool()
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Could not get connection from pool")

        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    @contextmanager
    def transaction(self, lock_key: str | None = None) -> Iterator[psycopg2.extras.RealDictCursor]:
        """
        Run several statements atomically.

        Commits when the block exits cleanly and rolls back on any exception.
        With lock_key, a pg_advisory_xact_lock on hashtext(lock_key) is taken
        first and held until commit or rollback, so two transactions with the
        same key never overlap.
        """
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                if lock_key is not None:
                    cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (lock_key,))
                yield cur
            conn.commit()

    def _convert_params(self, params: Params) -> Params:
        """Convert UUID objects to strings, including inside nested lists and dicts."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(params)

    def _run(self, query: str, params: Params) -> List[Dict[str, Any]]:
        """Execute one statement in its own transaction and return its rows, if any."""
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, self._convert_params(params))
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
            conn.commit()
        return rows

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        return self._run(query, params)

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        rows = self._run(query, params)
        return rows[0] if rows else None

    def execute_scalar(self, query: str, params: Params = None) -> Any:
        """Execute query, return first column of the first row or None."""
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE ... RETURNING and return the affected rows."""
        return self._run(query, params)

    def close(self) -> None:
        """Close this URL's pool."""
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()

    @classmethod
    def close_all_pools(cls) -> None:
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
