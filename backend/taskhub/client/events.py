"""
Explicit event subscriptions.

Every ``subscribe`` returns a ``Subscription`` handle; owners collect their
handles in a ``SubscriptionGroup`` and close the group on teardown, so no
listener outlives the component that registered it.
"""
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Subscription:
    """Handle for one registered listener."""

    def __init__(self, bus: "EventBus", event: str, handler: Handler):
        self._bus = bus
        self.event = event
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Remove the listener. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.cancel()


class EventBus:
    """
    Synchronous publish/subscribe for a fixed set of event names.

    Handlers run in subscription order inside ``emit``. A failing handler is
    logged and does not stop delivery to the remaining handlers.
    """

    def __init__(self, *events: str):
        self._events = frozenset(events)
        self._handlers: Dict[str, List[Subscription]] = {name: [] for name in events}

    @property
    def events(self) -> frozenset:
        return self._events

    def subscribe(self, event: str, handler: Handler) -> Subscription:
        self._check(event)
        subscription = Subscription(self, event, handler)
        self._handlers[event].append(subscription)
        return subscription

    def emit(self, event: str, *args) -> int:
        """Deliver to every current listener; returns how many were called."""
        self._check(event)
        delivered = 0
        # Copy: handlers may unsubscribe while we iterate
        for subscription in list(self._handlers[event]):
            if not subscription.active:
                continue
            try:
                subscription.handler(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' failed")
            delivered += 1
        return delivered

    def listener_count(self, event: str = None) -> int:
        if event is not None:
            self._check(event)
            return len(self._handlers[event])
        return sum(len(subs) for subs in self._handlers.values())

    def _remove(self, subscription: Subscription) -> None:
        subs = self._handlers.get(subscription.event, [])
        if subscription in subs:
            subs.remove(subscription)

    def _check(self, event: str) -> None:
        if event not in self._events:
            raise ValueError(f"Unknown event '{event}' (expected one of {sorted(self._events)})")


class SubscriptionGroup:
    """Collects subscriptions so they can be cancelled together."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def add(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()

    def __len__(self) -> int:
        return len(self._subscriptions)
