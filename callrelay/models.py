"""Typed values passed between the store, stream sessions and the proxy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SubscriptionHandle:
    call_id: str
    id: int


@dataclass
class Subscription:
    handle: SubscriptionHandle
    # Events stored before registration, in arrival order
    backlog: list[Any] = field(default_factory=list)


@dataclass
class UpstreamReply:
    status: int
    body: bytes
    content_type: str = ""
    data: Any = None
    is_json: bool = False

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
