"""
Handlers that forward billing events to the notification collaborator.

Each factory returns a callable for EventBus.subscribe. Delivery is
fire-and-forget: if the notifier raises, the event bus logs it and the
billing operation that published the event is unaffected.
"""

import logging
from typing import Any, Callable

from core.collaborators import Notifier
from core.events import (
    InvoiceActivated,
    InvoiceCancelled,
    InvoiceOverdue,
    InvoicePaid,
    InvoiceReminderDue,
    PeriodClosed,
)

logger = logging.getLogger(__name__)


def _invoice_payload(invoice) -> dict[str, Any]:
    return {
        "invoice_id": str(invoice.id),
        "invoice_number": invoice.invoice_number,
        "client_id": str(invoice.client_id),
        "status": invoice.status.value,
        "total": str(invoice.total),
        "outstanding": str(invoice.outstanding),
        "due_date": invoice.due_date.isoformat(),
    }


def handle_invoice_activated(notifier: Notifier) -> Callable:
    """
    Factory that returns an InvoiceActivated handler.

    Args:
        notifier: Notification collaborator

    Returns:
        Handler callable that sends the invoice-issued notice
    """

    def handler(event: InvoiceActivated):
        notifier.notify("invoice_activated", _invoice_payload(event.invoice))

    return handler


def handle_invoice_overdue(notifier: Notifier) -> Callable:
    """Factory that returns an InvoiceOverdue handler."""

    def handler(event: InvoiceOverdue):
        notifier.notify("invoice_overdue", _invoice_payload(event.invoice))

    return handler


def handle_invoice_paid(notifier: Notifier) -> Callable:
    """Factory that returns an InvoicePaid handler including the receipt."""

    def handler(event: InvoicePaid):
        payload = _invoice_payload(event.invoice)
        if event.payment is not None:
            payload["receipt_number"] = event.payment.receipt_number
            payload["amount"] = str(event.payment.amount)
        notifier.notify("invoice_paid", payload)

    return handler


def handle_invoice_cancelled(notifier: Notifier) -> Callable:
    """Factory that returns an InvoiceCancelled handler."""

    def handler(event: InvoiceCancelled):
        payload = _invoice_payload(event.invoice)
        payload["reason"] = event.reason
        notifier.notify("invoice_cancelled", payload)

    return handler


def handle_invoice_reminder(notifier: Notifier) -> Callable:
    """Factory that returns an InvoiceReminderDue handler."""

    def handler(event: InvoiceReminderDue):
        payload = _invoice_payload(event.invoice)
        payload["days_from_due"] = event.days_from_due
        notifier.notify("invoice_reminder", payload)

    return handler


def handle_period_closed(notifier: Notifier) -> Callable:
    """Factory that returns a PeriodClosed handler."""

    def handler(event: PeriodClosed):
        period = event.period
        logger.info("Notifying close of period %s", period.period_id)
        notifier.notify("period_closed", {
            "period_id": period.period_id,
            "client_count": period.totals.client_count,
            "agency_net_scaled": period.totals.agency_net_scaled,
            "consolidated_amounts": dict(period.consolidated_amounts),
        })

    return handler


NOTIFICATION_HANDLERS: dict[str, Callable[[Notifier], Callable]] = {
    "InvoiceActivated": handle_invoice_activated,
    "InvoiceOverdue": handle_invoice_overdue,
    "InvoicePaid": handle_invoice_paid,
    "InvoiceCancelled": handle_invoice_cancelled,
    "InvoiceReminderDue": handle_invoice_reminder,
    "PeriodClosed": handle_period_closed,
}
