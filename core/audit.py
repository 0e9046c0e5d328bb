"""
Append-only audit trail of billing entity changes.

Invoices, payments, statements and periods record who changed what. Each
entry names the acting operator, or SYSTEM_ACTOR_ID for scheduled jobs, and
carries a JSON description of the change. Entries are never updated or
deleted.
"""

import threading
from enum import Enum
from uuid import UUID, uuid4
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.actor_context import get_current_actor_id
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    CONSOLIDATE = "consolidate"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two JSON-dumped entity states.

    A field missing on one side counts as None. Fields in exclude_fields
    (default: updated_at) are ignored. Returns {} when nothing changed.
    """
    exclude = exclude_fields or {"updated_at"}
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in old.keys() | new.keys()
        if key not in exclude and old.get(key) != new.get(key)
    }


def _entry(
    entity_type: str,
    entity_id: UUID | str,
    action: AuditAction,
    changes: dict[str, Any],
    actor_id: UUID | None,
) -> dict[str, Any]:
    return {
        "id": uuid4(),
        "actor_id": actor_id or get_current_actor_id(),
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "action": action.value,
        "changes": changes,
        "created_at": now_utc(),
    }


class AuditLogger:
    """
    Audit trail stored in the audit_log table.

    Pass pydantic models through model_dump(mode="json") so UUIDs, Decimals
    and dates are stored as JSON values:

        audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.STATUS_CHANGE,
            changes=compute_changes(old.model_dump(mode="json"), new.model_dump(mode="json")),
        )

    changes is {"created": {...}} for CREATE, a compute_changes() diff for
    UPDATE and STATUS_CHANGE, and the consolidation summary for CONSOLIDATE.
    Periods use their "YYYY-MM" id as entity_id.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID | str,
        action: AuditAction,
        changes: dict[str, Any],
        actor_id: UUID | None = None
    ) -> None:
        """
        Append one entry, attributed to actor_id or the current actor.

        Raises:
            RuntimeError: No actor_id given and no actor context set.
        """
        self._append(_entry(entity_type, entity_id, action, changes, actor_id))

    def _append(self, entry: dict[str, Any]) -> None:
        self.postgres.execute(
            """
            INSERT INTO audit_log (id, actor_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%(id)s, %(actor_id)s, %(entity_type)s, %(entity_id)s,
                    %(action)s, %(changes)s, %(created_at)s)
            """,
            {**entry, "changes": Json(entry["changes"])}
        )

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID | str
    ) -> list[dict[str, Any]]:
        """All entries for one entity, newest first."""
        return self.postgres.execute(
            """
            SELECT id, actor_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, str(entity_id))
        )


class InMemoryAuditLogger(AuditLogger):
    """Process-local audit trail for tests and single-process runs."""

    def __init__(self):
        self._entries: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def _append(self, entry: dict[str, Any]) -> None:
        with self._lock:
            self._entries.append(entry)

    def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID | str
    ) -> list[dict[str, Any]]:
        key = (entity_type, str(entity_id))
        with self._lock:
            matching = [e for e in self._entries if (e["entity_type"], e["entity_id"]) == key]
        return matching[::-1]
