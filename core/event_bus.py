"""
In-process pub/sub for billing events.

publish() runs every handler for the event's class name right away, in the
caller's thread and in subscription order. By then the store write and the
audit entry are committed, so a failing handler is logged and skipped and
never fails the publisher. Notifications are best-effort.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List

from core.events import BillingEvent

logger = logging.getLogger(__name__)

Handler = Callable[[BillingEvent], None]


class EventBus:
    """Handlers keyed by event class name, e.g. bus.subscribe("InvoicePaid", handler)."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: str, callback: Handler):
        self._subscribers[event_type].append(callback)

    def subscriber_count(self, event_type: str) -> int:
        return len(self._subscribers.get(event_type, ()))

    def publish(self, event: BillingEvent) -> int:
        """Deliver event to its subscribers. Returns how many handlers succeeded."""
        event_type = type(event).__name__
        delivered = 0

        for callback in self._subscribers.get(event_type, ()):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
            else:
                delivered += 1

        return delivered
