"""Tests for InvoiceNumberAllocator."""

import logging
import threading
from unittest.mock import Mock

import pytest

from core.exceptions import DuplicateKeyError
from core.services.invoice_number_allocator import InvoiceNumberAllocator

CONSTRAINT = "invoices_invoice_number_key"


class _SetRegistry:
    """Thread-safe number registry enforcing uniqueness on insert."""

    def __init__(self):
        self.numbers: set[str] = set()
        self._lock = threading.Lock()

    def number_exists(self, number: str) -> bool:
        with self._lock:
            return number in self.numbers

    def max_sequence(self, prefix: str) -> int:
        with self._lock:
            tails = [n[len(prefix):] for n in self.numbers if n.startswith(prefix)]
        return max((int(t) for t in tails if t.isdigit()), default=0)

    def insert(self, number: str) -> str:
        with self._lock:
            if number in self.numbers:
                raise DuplicateKeyError(CONSTRAINT)
            self.numbers.add(number)
        return number


def _mock_registry(max_sequence=0, exists=False):
    registry = Mock()
    registry.max_sequence.return_value = max_sequence
    registry.number_exists.return_value = exists
    return registry


class TestFormatting:

    def test_sequential_format(self):
        allocator = InvoiceNumberAllocator(_mock_registry())
        assert allocator.format_number(2025, 42) == "FACT-2025-0042"

    def test_custom_prefix(self):
        allocator = InvoiceNumberAllocator(_mock_registry(), prefix="REC")
        assert allocator.year_prefix(2026) == "REC-2026-"


class TestAllocate:

    def test_first_number_of_year(self):
        allocator = InvoiceNumberAllocator(_mock_registry())
        number, result = allocator.allocate(2025)
        assert number == "FACT-2025-0001"
        assert result is None

    def test_continues_after_max_sequence(self):
        allocator = InvoiceNumberAllocator(_mock_registry(max_sequence=41))
        number, _ = allocator.allocate(2025, commit=lambda n: n)
        assert number == "FACT-2025-0042"

    def test_skips_taken_number(self):
        registry = _mock_registry()
        registry.number_exists.side_effect = [True, False]
        number, _ = InvoiceNumberAllocator(registry).allocate(2025, commit=lambda n: n)
        assert number == "FACT-2025-0002"

    def test_retries_after_losing_commit_race(self):
        registry = _mock_registry()
        registry.max_sequence.side_effect = [0, 1]
        commit = Mock(side_effect=[DuplicateKeyError(CONSTRAINT), "stored"])

        number, result = InvoiceNumberAllocator(registry).allocate(2025, commit=commit)

        assert number == "FACT-2025-0002"
        assert result == "stored"
        assert commit.call_count == 2

    def test_other_constraint_propagates(self):
        commit = Mock(side_effect=DuplicateKeyError("invoices_active_client_period_key"))
        with pytest.raises(DuplicateKeyError) as exc_info:
            InvoiceNumberAllocator(_mock_registry()).allocate(2025, commit=commit)
        assert exc_info.value.constraint == "invoices_active_client_period_key"
        assert commit.call_count == 1

    def test_unrelated_error_propagates(self):
        commit = Mock(side_effect=RuntimeError("db down"))
        with pytest.raises(RuntimeError, match="db down"):
            InvoiceNumberAllocator(_mock_registry()).allocate(2025, commit=commit)

    def test_falls_back_to_timestamp_after_exhaustion(self, caplog):
        allocator = InvoiceNumberAllocator(_mock_registry(exists=True), max_attempts=3)
        commit = Mock(side_effect=lambda n: n)

        with caplog.at_level(logging.WARNING, logger="core.services.invoice_number_allocator"):
            number, result = allocator.allocate(2025, commit=commit)

        assert number.startswith("FACT-2025-T")
        assert result == number
        commit.assert_called_once_with(number)
        assert "fallback" in caplog.text

    def test_fallback_numbers_differ(self):
        allocator = InvoiceNumberAllocator(_mock_registry())
        assert allocator.fallback_number(2025) != allocator.fallback_number(2025)


class TestConcurrentAllocation:

    def test_threads_never_share_a_number(self):
        registry = _SetRegistry()
        allocator = InvoiceNumberAllocator(registry, max_attempts=50)
        allocated: list[str] = []
        lock = threading.Lock()

        def worker():
            for _ in range(25):
                number, _ = allocator.allocate(2025, commit=registry.insert)
                with lock:
                    allocated.append(number)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(allocated) == 200
        assert len(set(allocated)) == 200
        assert registry.numbers == set(allocated)
