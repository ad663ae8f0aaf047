"""In-process publish/subscribe for refresh notifications"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

SALE_COMPLETED = "sale_completed"
SALE_REFUNDED = "sale_refunded"
PRODUCTS_UPDATED = "products_updated"
CUSTOMER_ADDED = "customer_added"
CUSTOMER_UPDATED = "customer_updated"
CUSTOMER_DELETED = "customer_deleted"
SETTINGS_UPDATED = "settings_updated"
DATA_RESTORED = "data_restored"


class EventBus:
    """Subscribers are plain callables or coroutine functions taking the payload."""

    def __init__(self):
        self._subscribers: dict[str, list[Callable]] = defaultdict(list)

    def subscribe(self, event: str, callback: Callable[[Any], Any]) -> Callable[[], None]:
        """Register ``callback`` for ``event``. Returns an unsubscribe function."""
        self._subscribers[event].append(callback)

        def unsubscribe():
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return unsubscribe

    async def emit(self, event: str, payload: Any = None) -> int:
        """Notify subscribers in registration order. Returns how many were called.

        A failing subscriber is logged and skipped; the producer's operation has
        already completed.
        """
        called = 0
        for callback in list(self._subscribers.get(event, ())):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Subscriber %r failed on %s", callback, event)
            called += 1
        return called
