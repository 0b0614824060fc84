"""Webhook ingestion: payload to call id, then store and fan out."""

from __future__ import annotations

from typing import Any

from callrelay.core.store import CallStore
from callrelay.utils.logging import get_logger

log = get_logger(__name__)


def extract_call_id(payload: Any) -> Any:
    """Return ``payload["payload"]["call_id"]`` or None for any other shape."""
    if not isinstance(payload, dict):
        return None
    inner = payload.get("payload")
    if not isinstance(inner, dict):
        return None
    return inner.get("call_id")


class WebhookIngestor:
    """Accepts every payload; shape problems route to the fallback key.

    The webhook endpoint is unauthenticated and accepts events for any
    call id.
    """

    def __init__(self, store: CallStore) -> None:
        self._store = store

    def ingest(self, payload: Any) -> str:
        if payload is None:
            payload = {}
        key = self._store.append(extract_call_id(payload), payload)
        delivered = self._store.broadcast(key, payload)
        log.info("webhook_ingested", call_id=key, subscribers=delivered)
        log.debug("webhook_payload", call_id=key, payload=payload)
        return key
