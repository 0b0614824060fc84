"""Server-Sent Events framing."""

from __future__ import annotations

import json
from typing import Any

UPDATE_EVENT = "update"
PING_EVENT = "ping"

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(name: str, data: Any) -> bytes:
    payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False, default=str)
    return f"event: {name}\ndata: {payload}\n\n".encode("utf-8")


def format_update(event: Any) -> bytes:
    return format_event(UPDATE_EVENT, event)


def format_ping() -> bytes:
    return format_event(PING_EVENT, {})
