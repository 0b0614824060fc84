"""callrelay entry point: wires the store, proxy and HTTP server together."""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from callrelay import __version__
from callrelay.config import Settings, load_settings
from callrelay.core.journal import EventJournal
from callrelay.core.store import CallStore
from callrelay.relay.proxy import ProxyForwarder
from callrelay.relay.server import RelayServer
from callrelay.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


def build_server(settings: Settings) -> RelayServer:
    journal = EventJournal(settings.get_journal_dir()) if settings.journal.enabled else None
    store = CallStore(journal=journal)
    proxy = ProxyForwarder(settings.upstream)
    return RelayServer(settings.server, store, proxy, stream_config=settings.stream)


async def run(settings: Settings) -> None:
    server = build_server(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    log.info(
        "callrelay_starting",
        version=__version__,
        credential_attached=bool(settings.upstream.auth_token),
        journal=str(settings.get_journal_dir()) if settings.journal.enabled else None,
    )
    await server.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await server.stop()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--port", type=int, default=None, help="Listen port (overrides config)")
@click.option("--debug", is_flag=True, help="Verbose logging, including webhook payloads")
def cli(config_path: str | None, log_level: str | None, port: int | None, debug: bool) -> None:
    """Relay telephony webhooks to browsers over SSE and proxy call control."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    if port is not None:
        settings.server.port = port
    if debug:
        settings.debug = True
    setup_logging(level=settings.effective_log_level(), json_output=settings.log_json)
    asyncio.run(run(settings))


if __name__ == "__main__":
    cli()
