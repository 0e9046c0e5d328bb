"""Tests for PostgresClient."""

from uuid import uuid4

import pytest

from clients.postgres_client import PostgresClient


class TestConvertParams:

    def test_uuids_become_strings_at_any_depth(self):
        client = PostgresClient.__new__(PostgresClient)
        value = uuid4()

        converted = client._convert_params((value, [value], {"k": value}, 5))

        assert converted == (str(value), [str(value)], {"k": str(value)}, 5)

    def test_none_passes_through(self):
        assert PostgresClient.__new__(PostgresClient)._convert_params(None) is None


class TestExecuteMethods:
    """Query execution against a live database."""

    def test_execute_scalar(self, db):
        assert db.execute_scalar("SELECT 1") == 1

    def test_execute_single_returns_none_when_empty(self, db):
        assert db.execute_single("SELECT 1 AS x WHERE false") is None

    def test_uuid_round_trip(self, db):
        value = uuid4()
        assert db.execute_scalar("SELECT %s::uuid", (value,)) == value


class TestTransaction:

    def test_commits_on_success(self, clean_db):
        with clean_db.transaction() as cur:
            cur.execute(
                "INSERT INTO audit_log (id, actor_id, entity_type, entity_id, action, changes, created_at) "
                "VALUES (%s, %s, 'invoice', 'x', 'create', '{}', now())",
                (uuid4(), uuid4()),
            )
        assert clean_db.execute_scalar("SELECT count(*) FROM audit_log") == 1

    def test_rolls_back_on_error(self, clean_db):
        with pytest.raises(RuntimeError):
            with clean_db.transaction() as cur:
                cur.execute(
                    "INSERT INTO audit_log (id, actor_id, entity_type, entity_id, action, changes, created_at) "
                    "VALUES (%s, %s, 'invoice', 'x', 'create', '{}', now())",
                    (uuid4(), uuid4()),
                )
                raise RuntimeError("abort")
        assert clean_db.execute_scalar("SELECT count(*) FROM audit_log") == 0

    def test_lock_key_holds_advisory_lock_until_commit(self, clean_db):
        held = "SELECT count(*) AS n FROM pg_locks WHERE locktype = 'advisory' AND pid = pg_backend_pid()"

        with clean_db.transaction(lock_key="ledger:USD") as cur:
            cur.execute(held)
            assert cur.fetchone()["n"] == 1

        with clean_db.transaction() as cur:
            cur.execute(held)
            assert cur.fetchone()["n"] == 0
