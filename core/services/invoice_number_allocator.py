"""
Collision-safe document numbering.

Numbers look like FACT-2025-0042: a prefix, the year, and a per-year
sequence. Concurrent writers may race for the same sequence; the store's
unique constraint is the arbiter, and a lost race simply moves on to the next
number. After a bounded number of attempts the allocator switches to a
timestamp-based number that cannot realistically collide.
"""

import logging
import time
from typing import Callable, TypeVar
from uuid import uuid4

from core.exceptions import DuplicateKeyError, NumberAllocationExhaustedError
from core.stores.base import NumberRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvoiceNumberAllocator:
    """
    Allocates sequential numbers against a NumberRegistry.

    Usage:
        allocator = InvoiceNumberAllocator(invoice_store, prefix="FACT")
        number, invoice = allocator.allocate(
            2025, commit=lambda n: invoice_store.insert(build_invoice(n))
        )
    """

    def __init__(
        self,
        registry: NumberRegistry,
        prefix: str = "FACT",
        max_attempts: int = 10,
        unique_constraint: str = "invoices_invoice_number_key"
    ):
        self.registry = registry
        self.prefix = prefix
        self.max_attempts = max_attempts
        self.unique_constraint = unique_constraint

    def year_prefix(self, year: int) -> str:
        return f"{self.prefix}-{year:04d}-"

    def format_number(self, year: int, sequence: int) -> str:
        return f"{self.year_prefix(year)}{sequence:04d}"

    def fallback_number(self, year: int) -> str:
        """Timestamp number used once sequential attempts are exhausted."""
        return f"{self.year_prefix(year)}T{time.time_ns()}{uuid4().hex[:4]}"

    def allocate(self, year: int, commit: Callable[[str], T] | None = None) -> tuple[str, T | None]:
        """
        Find a free number for year and commit it.

        Args:
            year: Calendar year embedded in the number
            commit: Called with the candidate number to persist the document.
                A DuplicateKeyError on this allocator's constraint counts as a
                collision and the next number is tried. Any other error
                propagates unchanged.

        Returns:
            (number, commit result); commit result is None when no commit was given
        """
        year_prefix = self.year_prefix(year)
        sequence = self.registry.max_sequence(year_prefix)

        for attempt in range(1, self.max_attempts + 1):
            sequence += 1
            number = self.format_number(year, sequence)

            if self.registry.number_exists(number):
                logger.debug("Number %s already taken (attempt %d/%d)", number, attempt, self.max_attempts)
                continue

            if commit is None:
                return number, None

            try:
                committed = commit(number)
            except DuplicateKeyError as e:
                if e.constraint != self.unique_constraint:
                    raise
                logger.info(
                    "Number %s claimed concurrently (attempt %d/%d)",
                    number, attempt, self.max_attempts
                )
                sequence = max(sequence, self.registry.max_sequence(year_prefix))
                continue

            logger.info("Allocated number %s", number)
            return number, committed

        exhausted = NumberAllocationExhaustedError(year_prefix, self.max_attempts)
        number = self.fallback_number(year)
        logger.warning("%s; heavy contention on %s, using fallback %s", exhausted, year_prefix, number)

        if commit is None:
            return number, None
        return number, commit(number)
