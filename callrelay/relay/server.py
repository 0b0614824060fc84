"""Relay HTTP server using aiohttp."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Awaitable, Callable

from aiohttp import web

from callrelay.config import ServerConfig, StreamConfig
from callrelay.core.store import CallStore
from callrelay.errors import ClientInputError, RelayError
from callrelay.models import UpstreamReply
from callrelay.relay.ingest import WebhookIngestor
from callrelay.relay.proxy import ProxyForwarder
from callrelay.relay.sse import SSE_HEADERS
from callrelay.relay.stream import StreamSession
from callrelay.utils.logging import get_logger

log = get_logger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class RelayServer:
    """Webhook intake, SSE fan-out and the browser control proxy."""

    def __init__(
        self,
        config: ServerConfig,
        store: CallStore,
        proxy: ProxyForwarder,
        stream_config: StreamConfig | None = None,
    ) -> None:
        self._config = config
        self._stream_config = stream_config or StreamConfig()
        self._store = store
        self._proxy = proxy
        self._ingestor = WebhookIngestor(store)
        self._sessions: set[StreamSession] = set()
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "relay_server_started",
            bind=self._config.bind,
            port=self._config.port,
            api_base=self._proxy.api_base,
            static_dir=self._config.static_dir or None,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        await self._proxy.close()
        log.info("relay_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def _build_app(self) -> web.Application:
        app = web.Application(
            client_max_size=self._config.max_body_size,
            middlewares=[self._cors_middleware],
        )
        app.router.add_get("/health", self._handle_health)
        app.router.add_post("/webhook", self._handle_webhook)
        app.router.add_get("/events", self._handle_events)
        app.router.add_post("/api/twoleg", self._handle_twoleg)
        app.router.add_post("/api/hangup", self._handle_hangup)
        if self._config.static_dir:
            static = Path(self._config.static_dir)
            app.router.add_get("/", self._make_index_handler(static))
            app.router.add_static("/", static, show_index=False)
        app.on_shutdown.append(self._close_sessions)
        return app

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        if request.method == "OPTIONS":
            response: web.StreamResponse = web.Response(status=204)
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                # 404/405/413 must stay readable cross-origin
                self._apply_cors(e)
                raise
        if not response.prepared:
            self._apply_cors(response)
        return response

    def _apply_cors(self, response: web.StreamResponse | web.HTTPException) -> None:
        origin = self._config.cors_origin
        if not origin:
            return
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"

    def _make_index_handler(self, static: Path) -> Handler:
        async def index(_request: web.Request) -> web.StreamResponse:
            page = static / "index.html"
            if not page.is_file():
                raise web.HTTPNotFound()
            return web.FileResponse(page)

        return index

    async def _close_sessions(self, _app: web.Application) -> None:
        if self._sessions:
            log.info("closing_streams", count=len(self._sessions))
        for session in list(self._sessions):
            session.close()

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_health(self, _request: web.Request) -> web.Response:
        return web.json_response({"ok": True, "api_base": self._proxy.api_base})

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        self._ingestor.ingest(await _read_json(request))
        return web.json_response({"ok": True})

    async def _handle_events(self, request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse(status=200, headers=SSE_HEADERS)
        try:
            session = StreamSession(
                self._store,
                request.query.get("call_id"),
                response.write,
                keepalive_interval=self._stream_config.keepalive_interval,
            )
        except ClientInputError as e:
            return web.json_response(e.to_payload(), status=e.status)

        self._apply_cors(response)
        await response.prepare(request)
        self._sessions.add(session)
        try:
            await session.run()
        finally:
            self._sessions.discard(session)
        return response

    async def _handle_twoleg(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        try:
            reply = await self._proxy.forward_twoleg(body)
        except RelayError as e:
            return web.json_response(e.to_payload(), status=e.status)
        return _relay(reply)

    async def _handle_hangup(self, request: web.Request) -> web.Response:
        body = await _read_json(request)
        try:
            reply = await self._proxy.forward_hangup(body)
        except RelayError as e:
            return web.json_response(e.to_payload(), status=e.status)
        return _relay(reply)


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

async def _read_json(request: web.Request) -> Any:
    """Parse the request body as JSON; None when empty or unparsable."""
    raw = await request.read()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        log.debug("request_body_not_json", path=request.path)
        return None


def _relay(reply: UpstreamReply) -> web.Response:
    if reply.is_json:
        return web.json_response(reply.data, status=reply.status)
    response = web.Response(status=reply.status, body=reply.body)
    response.headers["Content-Type"] = reply.content_type or "text/plain; charset=utf-8"
    return response
