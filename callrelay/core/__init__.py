"""Event storage and subscriber fan-out."""

from callrelay.core.journal import EventJournal
from callrelay.core.store import GLOBAL_CALL_ID, CallStore, EventLog, SubscriberRegistry

__all__ = [
    "EventJournal",
    "GLOBAL_CALL_ID",
    "CallStore",
    "EventLog",
    "SubscriberRegistry",
]
