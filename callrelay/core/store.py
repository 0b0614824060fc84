"""Per-call event history and live subscriber fan-out."""

from __future__ import annotations

import itertools
from typing import Any, Callable

from callrelay.core.journal import EventJournal
from callrelay.models import Subscription, SubscriptionHandle
from callrelay.utils.logging import get_logger

log = get_logger(__name__)

GLOBAL_CALL_ID = "global"

Sink = Callable[[Any], None]


def resolve_call_id(call_id: Any) -> str:
    """Map an absent or falsy call id to the shared fallback key."""
    if not call_id:
        return GLOBAL_CALL_ID
    return str(call_id)


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------

class EventLog:
    """Append-only, arrival-ordered events keyed by call id. Never evicted."""

    def __init__(self) -> None:
        self._events: dict[str, list[Any]] = {}

    def append(self, call_id: str, event: Any) -> None:
        self._events.setdefault(call_id, []).append(event)

    def history(self, call_id: str) -> list[Any]:
        return list(self._events.get(call_id, ()))


# ---------------------------------------------------------------------------
# Subscriber registry
# ---------------------------------------------------------------------------

class SubscriberRegistry:
    def __init__(self) -> None:
        self._sinks: dict[str, dict[int, Sink]] = {}
        self._ids = itertools.count(1)

    def add(self, call_id: str, sink: Sink) -> SubscriptionHandle:
        handle = SubscriptionHandle(call_id=call_id, id=next(self._ids))
        self._sinks.setdefault(call_id, {})[handle.id] = sink
        return handle

    def remove(self, handle: SubscriptionHandle) -> bool:
        """Drop a subscription. Returns False if it was already gone."""
        sinks = self._sinks.get(handle.call_id)
        if not sinks or sinks.pop(handle.id, None) is None:
            return False
        if not sinks:
            del self._sinks[handle.call_id]
        return True

    def broadcast(self, call_id: str, event: Any) -> int:
        """Deliver to every sink registered when the broadcast started.

        A sink removed mid-broadcast is skipped. A sink that raises is
        logged and left registered; its connection reaps it on close.
        """
        current = self._sinks.get(call_id)
        if not current:
            return 0
        delivered = 0
        for sub_id, sink in list(current.items()):
            if sub_id not in current:
                continue
            try:
                sink(event)
            except Exception as e:
                log.warning(
                    "subscriber_delivery_failed",
                    call_id=call_id,
                    subscription=sub_id,
                    error=str(e),
                )
                continue
            delivered += 1
        return delivered

    def count(self, call_id: str) -> int:
        return len(self._sinks.get(call_id, ()))


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class CallStore:
    """Owns the event log, the subscriber registry and the optional journal.

    None of the methods await, so on a single event loop every call is
    atomic with respect to other tasks. That is what makes the
    subscribe-and-snapshot in ``subscribe`` gap-free.
    """

    def __init__(self, journal: EventJournal | None = None) -> None:
        self.log = EventLog()
        self.registry = SubscriberRegistry()
        self._journal = journal

    def append(self, call_id: Any, event: Any) -> str:
        """Store an event and journal it. Returns the resolved call id."""
        key = resolve_call_id(call_id)
        self.log.append(key, event)
        if self._journal is not None:
            self._journal.write(key, event)
        return key

    def history(self, call_id: Any) -> list[Any]:
        return self.log.history(resolve_call_id(call_id))

    def subscribe(self, call_id: str, sink: Sink) -> Subscription:
        """Register a sink and snapshot the backlog in one step."""
        handle = self.registry.add(call_id, sink)
        backlog = self.log.history(call_id)
        log.debug("subscriber_added", call_id=call_id, subscription=handle.id, backlog=len(backlog))
        return Subscription(handle=handle, backlog=backlog)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        if self.registry.remove(handle):
            log.debug("subscriber_removed", call_id=handle.call_id, subscription=handle.id)

    def broadcast(self, call_id: Any, event: Any) -> int:
        return self.registry.broadcast(resolve_call_id(call_id), event)

    def subscriber_count(self, call_id: str) -> int:
        return self.registry.count(call_id)
