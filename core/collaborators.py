"""
Outbound collaborator contracts.

The engine reads sales and contract terms owned by other systems and emits
notifications it never waits on. Only the shape of each boundary is fixed
here; implementations live with whoever owns the data.
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from core.models import CommissionScale, Contract, Sale


class SalesSource(Protocol):
    """Read-only access to a client's itemized sales."""

    def list_sales(self, client_id: UUID, start: datetime, end: datetime) -> list[Sale]:
        """Sales with start <= occurred_at <= end."""
        ...

    def list_client_ids_with_sales(self, start: datetime, end: datetime) -> set[UUID]: ...


class ContractDirectory(Protocol):
    """Read-only lookup of commission terms."""

    def get_current_contract(self, client_id: UUID) -> Contract | None:
        """Latest signed contract for the client, or None."""
        ...

    def get_scale(self, scale_id: UUID) -> CommissionScale | None: ...


class Notifier(Protocol):
    """Fire-and-forget delivery of billing notifications."""

    def notify(self, kind: str, payload: dict[str, Any]) -> None: ...
