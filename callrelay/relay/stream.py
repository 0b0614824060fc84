"""One long-lived SSE connection bound to a single call id."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable

from callrelay.core.store import CallStore
from callrelay.errors import ClientInputError
from callrelay.models import SubscriptionHandle
from callrelay.relay.sse import format_ping, format_update
from callrelay.utils.logging import get_logger

log = get_logger(__name__)

Writer = Callable[[bytes], Awaitable[None]]

# Queue markers; events themselves are never these objects
_PING = object()
_CLOSE = object()


class SessionState(str, Enum):
    OPENING = "opening"
    ACTIVE = "active"
    CLOSED = "closed"


class StreamSession:
    """Replays a call's history, then relays live events and keepalive pings.

    Broadcasts and keepalive ticks only enqueue; all writes happen in
    ``run`` so frames never interleave on the wire.
    """

    def __init__(
        self,
        store: CallStore,
        call_id: str | None,
        write: Writer,
        keepalive_interval: float = 25.0,
    ) -> None:
        self.state = SessionState.OPENING
        if not call_id:
            self.state = SessionState.CLOSED
            raise ClientInputError("Missing call_id")
        self.call_id = call_id
        self._store = store
        self._write = write
        self._keepalive_interval = keepalive_interval
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._handle: SubscriptionHandle | None = None
        self._keepalive_task: asyncio.Task[None] | None = None

    async def run(self) -> None:
        if self.state is not SessionState.OPENING:
            raise RuntimeError(f"session for {self.call_id} already {self.state.value}")

        subscription = self._store.subscribe(self.call_id, self._queue.put_nowait)
        self._handle = subscription.handle
        self.state = SessionState.ACTIVE
        log.info("stream_opened", call_id=self.call_id, backlog=len(subscription.backlog))

        try:
            for event in subscription.backlog:
                await self._write(format_update(event))

            self._keepalive_task = asyncio.create_task(
                self._keepalive(), name=f"sse-keepalive-{self.call_id}"
            )

            while True:
                item = await self._queue.get()
                if item is _CLOSE:
                    break
                if item is _PING:
                    await self._write(format_ping())
                else:
                    await self._write(format_update(item))
        except ConnectionError as e:
            log.debug("stream_client_gone", call_id=self.call_id, error=str(e))
        finally:
            await self._teardown()

    def close(self) -> None:
        """Ask the session to stop; cleanup runs in ``run``."""
        if self.state is SessionState.OPENING:
            self.state = SessionState.CLOSED
        elif self.state is SessionState.ACTIVE:
            self._queue.put_nowait(_CLOSE)

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self._keepalive_interval)
            self._queue.put_nowait(_PING)

    async def _teardown(self) -> None:
        if self._handle is not None:
            self._store.unsubscribe(self._handle)
            self._handle = None
        if self._keepalive_task is not None:
            task, self._keepalive_task = self._keepalive_task, None
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self.state = SessionState.CLOSED
        log.info("stream_closed", call_id=self.call_id)
