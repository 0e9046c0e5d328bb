"""
Time-driven invoice jobs.

run_activation and run_overdue_check are pure functions of `now` and safe to
re-run; an external cron can call them directly. start() runs both on their
configured intervals in a daemon thread, sending payment reminders after each
overdue check.
"""

import logging
import threading
import time
from datetime import date, datetime

from core.config import BillingConfig
from core.models import ActivationResult, OverdueResult
from core.services.invoice_service import InvoiceService
from utils.actor_context import SYSTEM_ACTOR_ID, actor_context
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class ActivationScheduler:
    """Drives invoice activation and overdue marking."""

    def __init__(self, invoices: InvoiceService, config: BillingConfig | None = None):
        self.invoices = invoices
        self.config = config or BillingConfig()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def run_activation(self, now: datetime | date | None = None) -> ActivationResult:
        """Activate every TRACKING invoice whose cut date has arrived by `now`."""
        now = now or now_utc()
        started = time.monotonic()
        with actor_context(SYSTEM_ACTOR_ID):
            result = self.invoices.activate_due(now)
        logger.info(
            "Activation run at %s: %d activated, %d skipped, %d failed (%.3fs)",
            now, result.activated, result.skipped, result.failed, time.monotonic() - started
        )
        return result

    def run_overdue_check(self, now: datetime | date | None = None) -> OverdueResult:
        """Mark invoices past their due date with a balance as OVERDUE."""
        now = now or now_utc()
        started = time.monotonic()
        with actor_context(SYSTEM_ACTOR_ID):
            result = self.invoices.mark_overdue_if_past_due(now)
        logger.info(
            "Overdue check at %s: %d marked, %d skipped, %d failed (%.3fs)",
            now, result.marked, result.skipped, result.failed, time.monotonic() - started
        )
        return result

    def run_reminders(self, now: datetime | date | None = None) -> int:
        """Publish payment reminders for invoices on a configured reminder day."""
        with actor_context(SYSTEM_ACTOR_ID):
            return self.invoices.send_reminders(now or now_utc())

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background driver. Both jobs run once immediately."""
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="billing-scheduler", daemon=True)
        self._thread.start()
        logger.info(
            "Scheduler started (activation every %ds, overdue every %ds)",
            self.config.activation_interval_seconds, self.config.overdue_interval_seconds
        )

    def _tick(self, job) -> None:
        try:
            job()
        except Exception:
            logger.exception("Scheduled job %s failed", job.__name__)

    def _run(self) -> None:
        next_activation = next_overdue = time.monotonic()

        while not self._stop.is_set():
            current = time.monotonic()
            if current >= next_activation:
                self._tick(self.run_activation)
                next_activation = current + self.config.activation_interval_seconds
            if current >= next_overdue:
                self._tick(self.run_overdue_check)
                self._tick(self.run_reminders)
                next_overdue = current + self.config.overdue_interval_seconds

            wait = min(next_activation, next_overdue) - time.monotonic()
            self._stop.wait(max(wait, 0.0))

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("Scheduler stopped")
