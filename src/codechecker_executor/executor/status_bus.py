"""Publish/subscribe channel for process status transitions."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from codechecker_executor.executor.models import ProcessStatusEvent

logger = logging.getLogger(__name__)

StatusListener = Callable[[ProcessStatusEvent], None]


class SubscriptionDisposedError(RuntimeError):
    """Raised when a disposed subscription is used."""


class Subscription:
    """Handle returned by :meth:`StatusBus.subscribe`; disposing it detaches the listener."""

    def __init__(self, bus: StatusBus, listener: StatusListener) -> None:
        self._bus = bus
        self._listener = listener
        self._disposed = False
        # Held while the listener runs; dispose() from another thread waits for delivery to end.
        self._delivery_lock = threading.RLock()

    @property
    def active(self) -> bool:
        return not self._disposed

    @property
    def listener(self) -> StatusListener:
        if self._disposed:
            raise SubscriptionDisposedError("Subscription has already been disposed.")
        return self._listener

    def dispose(self) -> None:
        with self._delivery_lock:
            if self._disposed:
                return
            self._disposed = True
        self._bus._remove(self)

    def _deliver(self, event: ProcessStatusEvent) -> None:
        with self._delivery_lock:
            if self._disposed:
                return
            self._listener(event)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()


class StatusBus:
    """Registry of status listeners, notified in registration order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self, listener: StatusListener) -> Subscription:
        subscription = Subscription(self, listener)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: ProcessStatusEvent) -> None:
        """Deliver ``event`` to every live listener.

        The listener list is snapshotted first, so listeners may subscribe or
        dispose (themselves or others) while being called. A listener disposed
        mid-delivery is skipped. Listener errors are logged and do not stop
        delivery to the remaining listeners.
        """

        with self._lock:
            snapshot = tuple(self._subscriptions)
        for subscription in snapshot:
            try:
                subscription._deliver(event)
            except Exception:
                logger.exception(
                    "Status listener failed on %s -> %s",
                    event.request.describe(),
                    event.status.value,
                )

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                return
